"""Command line app for Stream Deck video playback."""
