import numpy as np

from asset_squeeze.color_stats import ColorTable, classify_direct, classify_gray, pack_rgba, unpack_rgba


def test_opaque_alpha_channel_reports_no_transparency():
    pixels = np.array(
        [[[10, 10, 10, 255], [20, 20, 20, 255]], [[10, 10, 10, 255], [30, 30, 30, 255]]],
        dtype=np.uint8,
    )
    stats, table = classify_direct(pixels)
    assert stats.n == 3
    assert not stats.has_transparent
    assert not stats.has_partial_alpha
    assert not stats.has_alpha
    assert stats.is_gray
    assert int(table.counts.sum()) == 4


def test_alpha_buckets():
    pixels = np.array([[[1, 2, 3, 0], [1, 2, 3, 128], [1, 2, 3, 255]]], dtype=np.uint8)
    stats, _table = classify_direct(pixels)
    assert stats.has_transparent
    assert stats.has_partial_alpha
    assert not stats.is_gray
    assert stats.n == 3


def test_single_chromatic_pixel_clears_gray_flag():
    pixels = np.full((4, 4, 3), 90, dtype=np.uint8)
    pixels[3, 3] = (90, 91, 90)
    stats, _table = classify_direct(pixels)
    assert not stats.is_gray
    assert stats.n == 2


def test_rgb_pixels_count_as_opaque():
    pixels = np.zeros((2, 2, 3), dtype=np.uint8)
    stats, table = classify_direct(pixels)
    assert stats.n == 1
    assert not stats.has_alpha
    assert list(table.items()) == [((0, 0, 0, 255), 4)]


def test_table_counts_match_pixel_frequencies():
    pixels = np.array([[[5, 5, 5, 255], [9, 0, 0, 255], [5, 5, 5, 255], [5, 5, 5, 255]]], dtype=np.uint8)
    table = ColorTable.from_rgba(pixels)
    assert dict(table.items()) == {(5, 5, 5, 255): 3, (9, 0, 0, 255): 1}


def test_pack_roundtrip_preserves_channel_order():
    rgba = np.array([[1, 2, 3, 4], [250, 0, 17, 255]], dtype=np.uint8)
    assert np.array_equal(unpack_rgba(pack_rgba(rgba)), rgba)


def test_gray_source_counts_levels():
    pixels = np.array([[0, 0, 7], [7, 7, 200]], dtype=np.uint8)
    stats, table = classify_gray(pixels)
    assert stats.n == 3
    assert stats.is_gray
    assert not stats.has_alpha
    assert dict(table.items()) == {0: 2, 7: 3, 200: 1}
