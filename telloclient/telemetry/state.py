# telloclient/telemetry/state.py
from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Dict, Mapping, Optional


@dataclass(frozen=True)
class TelloState:
    """
    One telemetry broadcast (state port, ~10 Hz).

    Attitude in degrees, speeds in dm/s, temperatures in °C, tof/h in cm,
    bat in %, baro in m, time in s, accelerations in 0.001g. Keys the SDK
    adds later (mid, x, y, z, mpry...) land in `extra`.
    """
    pitch: Optional[float] = None
    roll: Optional[float] = None
    yaw: Optional[float] = None
    vgx: Optional[float] = None
    vgy: Optional[float] = None
    vgz: Optional[float] = None
    templ: Optional[float] = None
    temph: Optional[float] = None
    tof: Optional[float] = None
    h: Optional[float] = None
    bat: Optional[float] = None
    baro: Optional[float] = None
    time: Optional[float] = None
    agx: Optional[float] = None
    agy: Optional[float] = None
    agz: Optional[float] = None
    extra: Mapping[str, float] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, float]:
        out = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "extra"}
        out = {k: v for k, v in out.items() if v is not None}
        out.update(self.extra)
        return out


_KNOWN = frozenset(f.name for f in fields(TelloState) if f.name != "extra")


def parse_state(text: str) -> TelloState:
    """Parse "pitch:0;roll:0;...;" into a TelloState. Malformed pairs are skipped."""
    known: Dict[str, float] = {}
    extra: Dict[str, float] = {}

    for pair in text.strip().split(";"):
        if not pair:
            continue
        key, sep, raw = pair.partition(":")
        key = key.strip()
        if not sep or not key:
            continue
        try:
            value = float(raw)
        except ValueError:
            continue
        if key in _KNOWN:
            known[key] = value
        else:
            extra[key] = value

    return TelloState(**known, extra=extra)
