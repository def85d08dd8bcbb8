import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from upstream.entities.struct import Cached, MetaField


def test_cached_distinguishes_unloaded_from_empty():
    slot = Cached()
    assert not slot.loaded
    with pytest.raises(LookupError):
        slot.get()

    slot.set(None)
    assert slot.loaded
    assert slot.get() is None

    slot.clear()
    assert not slot.loaded


def test_single_field_coercion_uses_default_for_missing_values():
    field = MetaField("upst_order", load=int, default=0)
    assert field.coerce(None) == 0
    assert field.coerce("") == 0
    assert field.coerce("4") == 4


def test_repeated_field_coercion_always_returns_a_list():
    field = MetaField("upst_assigned_to", repeated=True, load=int)
    assert field.coerce(None) == []
    assert field.coerce(["1", 2]) == [1, 2]
    assert field.coerce("3") == [3]
