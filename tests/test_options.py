from __future__ import annotations

import pytest

from qrtp.options import ProtocolOptions


def test_defaults():
    o = ProtocolOptions()
    assert (o.debounce_ms, o.send_gap_ms, o.max_ranges_per_batch) == (1000, 200, 5)
    assert (o.backlog_threshold, o.final_ack_delay_ms) == (3, 1000)
    assert o.default_chunk_size == 800


@pytest.mark.parametrize("kwargs", [
    {"debounce_ms": -1},
    {"max_ranges_per_batch": 0},
    {"backlog_threshold": 0},
    {"default_cycle_interval_ms": 0},
    {"volume": 0},
    {"volume": 101},
])
def test_validation(kwargs):
    with pytest.raises(ValueError):
        ProtocolOptions(**kwargs)
