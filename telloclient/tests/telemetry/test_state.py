from __future__ import annotations

from telloclient.telemetry.state import TelloState, parse_state

SAMPLE = (
    "pitch:0;roll:-1;yaw:45;vgx:0;vgy:0;vgz:0;templ:62;temph:64;tof:10;h:0;"
    "bat:87;baro:178.51;time:0;agx:-3.00;agy:10.00;agz:-999.00;\r\n"
)


def test_parse_full_broadcast():
    s = parse_state(SAMPLE)

    assert s.roll == -1
    assert s.yaw == 45
    assert s.templ == 62 and s.temph == 64
    assert s.bat == 87
    assert s.baro == 178.51
    assert s.agz == -999.0
    assert s.extra == {}


def test_unknown_keys_go_to_extra():
    s = parse_state("mid:-1;x:0;y:0;z:0;mpry:0,0,0;bat:50;")

    assert s.bat == 50
    assert s.extra == {"mid": -1.0, "x": 0.0, "y": 0.0, "z": 0.0}


def test_malformed_pairs_are_skipped():
    s = parse_state("pitch;roll:abc;:5;yaw:10;;h:")

    assert s.pitch is None
    assert s.roll is None
    assert s.yaw == 10
    assert s.h is None


def test_empty_text_gives_empty_state():
    assert parse_state("") == TelloState()


def test_as_dict_drops_missing_and_merges_extra():
    s = parse_state("bat:90;h:30;mid:1;")
    assert s.as_dict() == {"bat": 90.0, "h": 30.0, "mid": 1.0}
