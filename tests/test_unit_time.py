from datetime import datetime, timezone

from delivery_audit.utils.time import epoch_seconds, epoch_to_iso, to_iso_utc


def test_epoch_seconds_accepts_seconds_and_milliseconds():
    assert epoch_seconds(1741600000) == 1741600000
    assert epoch_seconds(1741600000999) == 1741600000
    assert epoch_seconds(1741600000.7) == 1741600000


def test_epoch_seconds_rejects_out_of_range_values():
    assert epoch_seconds(0) == 0
    assert epoch_seconds(-1) == 0
    assert epoch_seconds(10**20) == 0
    assert epoch_seconds(float("inf")) == 0


def test_epoch_to_iso_returns_none_instead_of_raising():
    assert epoch_to_iso(1741600000) == "2025-03-10T09:46:40+00:00"
    assert epoch_to_iso(10**15) is None
    assert epoch_to_iso(None) is None


def test_to_iso_utc_handles_stored_shapes():
    assert to_iso_utc(datetime(2025, 3, 1, 15, 0, tzinfo=timezone.utc)) == "2025-03-01T15:00:00+00:00"
    assert to_iso_utc(1741600000000) == "2025-03-10T09:46:40+00:00"
    assert to_iso_utc({"_seconds": 1741600000}) == "2025-03-10T09:46:40+00:00"
    assert to_iso_utc("2025-03-01") == "2025-03-01"
    assert to_iso_utc(10**25) is None
    assert to_iso_utc(True) is None
