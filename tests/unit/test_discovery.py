import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "device"))

from deckvideo_device.discovery import auto_select_device, discover_device
from deckvideo_device.errors import NoDeviceFoundError
from deckvideo_device.models import ELGATO_VENDOR_ID, DeckDevice


class CountingTransport:
    def __init__(self, decks, hid):
        self.decks = decks
        self.hid = hid
        self.scans = 0

    def enumerate(self):
        return self.decks

    def scan(self):
        self.scans += 1
        return self.hid


class DiscoveryTests(unittest.TestCase):
    def test_vendor_match(self):
        self.assertTrue(DeckDevice(path="a", product="x", vendor_id=ELGATO_VENDOR_ID).is_elgato)
        self.assertTrue(DeckDevice(path="a", product="x", manufacturer="ELGATO").is_elgato)
        self.assertFalse(DeckDevice(path="a", product="x", vendor_id=0x1234).is_elgato)

    def test_hex_ids(self):
        d = DeckDevice(path="a", product="x", vendor_id=ELGATO_VENDOR_ID, product_id=0x63)
        self.assertEqual((d.vid_hex, d.pid_hex), ("0FD9", "0063"))

    def test_primary_wins(self):
        first = DeckDevice(path="p1", product="Mini")
        picked = auto_select_device([first], [DeckDevice(path="h", product="x", vendor_id=ELGATO_VENDOR_ID)])
        self.assertIs(picked, first)

    def test_scan_skipped_when_driver_finds_decks(self):
        transport = CountingTransport([DeckDevice(path="p1", product="Mini")], [])
        self.assertEqual(discover_device(transport).path, "p1")
        self.assertEqual(transport.scans, 0)

    def test_nothing_found(self):
        self.assertIsNone(auto_select_device([], [DeckDevice(path="h", product="Mouse")]))
        with self.assertRaises(NoDeviceFoundError):
            discover_device(CountingTransport([], []))


if __name__ == "__main__":
    unittest.main()
