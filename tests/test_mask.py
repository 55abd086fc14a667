import numpy as np
import pytest

from brickify.services.mask import (
    MASK_SIZE,
    circle_mask,
    coerce_bit,
    mask_coverage,
    mask_value_at,
    parse_mask,
    repair_mask,
    resample_mask,
)

from conftest import top_left_mask


@pytest.mark.parametrize(
    "value, expected",
    [
        (1, 1),
        (0, 0),
        (1.0, 1),
        (0.2, 0),
        (0.7, 1),
        (True, 1),
        (False, 0),
        ("1", 1),
        ("0", 0),
        (" true ", 1),
        ("FALSE", 0),
        ("", 0),
        ("0.9", 1),
        (np.int64(1), 1),
        (np.bool_(False), 0),
    ],
)
def test_coerce_bit(value, expected):
    assert coerce_bit(value) == expected


@pytest.mark.parametrize("value", ["abc", None, [1], float("nan"), {"v": 1}])
def test_coerce_bit_rejects(value):
    with pytest.raises(ValueError):
        coerce_bit(value)


def test_parse_mask_valid():
    raw = top_left_mask(32, 32)
    raw[0][0] = "1"
    raw[0][1] = True
    raw[40][40] = "0"
    mask = parse_mask(raw)

    assert mask is not None
    assert mask.shape == (MASK_SIZE, MASK_SIZE)
    assert mask.dtype == bool
    assert int(mask.sum()) == 32 * 32


def test_parse_mask_malformed_is_absent():
    assert parse_mask(None) is None
    assert parse_mask("not a mask") is None
    assert parse_mask(top_left_mask(8, 8)[:63]) is None

    short_row = top_left_mask(8, 8)
    short_row[10] = short_row[10][:63]
    assert parse_mask(short_row) is None

    bad_cell = top_left_mask(8, 8)
    bad_cell[5][5] = "maybe"
    assert parse_mask(bad_cell) is None


def test_mask_value_at_nearest_cell():
    mask = parse_mask(top_left_mask(32, 32))

    # 4x4 그리드: 셀 하나 = 마스크 16x16
    assert mask_value_at(0, 0, mask, 4, 4) == 1
    assert mask_value_at(1, 1, mask, 4, 4) == 1
    assert mask_value_at(2, 0, mask, 4, 4) == 0
    assert mask_value_at(0, 2, mask, 4, 4) == 0

    # 그리드가 마스크보다 크면 63으로 clamp
    assert mask_value_at(199, 199, mask, 200, 200) == 0


def test_mask_value_at_without_mask():
    assert mask_value_at(3, 7, None, 10, 10) == 1


def test_resample_matches_scalar_lookup():
    rng = np.random.RandomState(3)
    mask = rng.rand(MASK_SIZE, MASK_SIZE) > 0.5

    for grid_w, grid_h in ((48, 48), (64, 64), (7, 13), (100, 80)):
        active = resample_mask(mask, grid_w, grid_h)
        assert active.shape == (grid_h, grid_w)
        for y in range(grid_h):
            for x in range(grid_w):
                assert int(active[y, x]) == mask_value_at(x, y, mask, grid_w, grid_h)


def test_resample_without_mask_is_all_active():
    active = resample_mask(None, 5, 3)
    assert active.shape == (3, 5)
    assert active.all()


def test_circle_mask_is_centered():
    circle = circle_mask(0.42)
    assert circle[32, 32]
    assert not circle[0, 0]
    assert not circle[63, 63]
    assert 0.45 < mask_coverage(circle) < 0.65
    # 좌우/상하 대칭
    assert (circle == circle[:, ::-1]).all()
    assert (circle == circle[::-1, :]).all()


def test_repair_mask_replaces_degenerate_masks():
    empty = np.zeros((MASK_SIZE, MASK_SIZE), dtype=bool)
    full = np.ones((MASK_SIZE, MASK_SIZE), dtype=bool)
    half = parse_mask(top_left_mask(64, 32))

    assert (repair_mask(empty) == circle_mask(0.42)).all()
    assert (repair_mask(full, radius_ratio=0.3) == circle_mask(0.3)).all()
    assert repair_mask(half) is half
    assert repair_mask(None) is None
