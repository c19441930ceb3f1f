"""
Formation slot vocabularies.

Each formation is an ordered list of the eleven starting slot codes; the
bench is always ``B1..Bn`` with ``n`` from ``settings.BENCH_SIZE``.
"""
from typing import Dict, List, Optional, Tuple

from squadtrack.core.config import settings

FORMATIONS: Dict[str, Tuple[str, ...]] = {
    "4-3-3": ("GK", "LB", "CB1", "CB2", "RB", "CM1", "CM2", "CM3", "LW", "ST", "RW"),
    "4-4-2": ("GK", "LB", "CB1", "CB2", "RB", "LM", "CM1", "CM2", "RM", "ST1", "ST2"),
    "3-5-2": ("GK", "CB1", "CB2", "CB3", "LWB", "CM1", "CM2", "CM3", "RWB", "ST1", "ST2"),
    "3-4-3": ("GK", "CB1", "CB2", "CB3", "LM", "CM1", "CM2", "RM", "LW", "ST", "RW"),
    "4-2-3-1": ("GK", "LB", "CB1", "CB2", "RB", "CDM1", "CDM2", "LW", "CAM", "RW", "ST"),
    "5-3-2": ("GK", "LWB", "CB1", "CB2", "CB3", "RWB", "CM1", "CM2", "CM3", "ST1", "ST2"),
}

BENCH_PREFIX = "B"


def supported_formations() -> List[str]:
    return list(FORMATIONS)


def is_supported(formation: str) -> bool:
    return formation in FORMATIONS


def starting_slots(formation: str) -> List[str]:
    """
    Raises:
        KeyError: unknown formation
    """
    return list(FORMATIONS[formation])


def bench_slots(bench_size: Optional[int] = None) -> List[str]:
    size = settings.BENCH_SIZE if bench_size is None else bench_size
    return [f"{BENCH_PREFIX}{i}" for i in range(1, size + 1)]


def slot_vocabulary(formation: str, bench_size: Optional[int] = None) -> List[str]:
    """Starting slots in formation order followed by the bench."""
    return starting_slots(formation) + bench_slots(bench_size)


def is_bench_slot(slot_code: str) -> bool:
    return slot_code.startswith(BENCH_PREFIX) and slot_code[len(BENCH_PREFIX):].isdigit()
