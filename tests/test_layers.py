import random

from wellcore.lib.layers import (ALL_PLACEMENTS, FluidLayer, LayerDomain, Placement, domain_window,
                                 slice_layers)
from wellcore.lib.rheology import RheologyOverride


def _union(intervals):
    out = []
    for top, bottom in sorted(intervals):
        if out and top <= out[-1][1] + 1e-9:
            out[-1] = (out[-1][0], max(out[-1][1], bottom))
        else:
            out.append((top, bottom))
    return out


def test_domain_windows():
    assert domain_window(LayerDomain.ABOVE_BIT, 1500.0, 3000.0) == (0.0, 1500.0)
    assert domain_window(LayerDomain.ABOVE_BIT, -10.0, 3000.0) == (0.0, 0.0)
    assert domain_window(LayerDomain.BELOW_BIT, 1500.0, 3000.0) == (1500.0, 3000.0)
    assert domain_window(LayerDomain.BELOW_BIT, 3000.0, 1500.0) == (1500.0, 3000.0)


def test_sorted_deep_to_shallow_and_volume_preserved():
    rng = random.Random(7)
    layers = []
    for _ in range(25):
        a, b = rng.uniform(0, 3000), rng.uniform(0, 3000)
        layers.append(FluidLayer(rng.choice([1100.0, 1200.0, 1300.0]), a, b))
    rng.shuffle(layers)

    segments = slice_layers(layers, LayerDomain.ABOVE_BIT, 2000.0, 3000.0, merge=False)
    bottoms = [s.bottom_md for s in segments]
    assert bottoms == sorted(bottoms, reverse=True)
    assert all(0.0 <= s.top_md < s.bottom_md <= 2000.0 for s in segments)

    clipped = [(max(0.0, l.shallow_md), min(2000.0, l.deep_md)) for l in layers]
    clipped = [(t, b) for t, b in clipped if b > t + 1e-9]
    assert _union([(s.top_md, s.bottom_md) for s in segments]) == _union(clipped)


def test_orientation_normalised():
    segments = slice_layers([FluidLayer(1200.0, 900.0, 100.0)], LayerDomain.ABOVE_BIT, 500.0, 500.0)
    assert len(segments) == 1
    assert (segments[0].top_md, segments[0].bottom_md) == (100.0, 500.0)


def test_placement_filter(two_fluid_column):
    default = slice_layers(two_fluid_column, LayerDomain.ABOVE_BIT, 3000.0, 3000.0, merge=False)
    assert {s.density for s in default} == {1200.0, 1400.0}

    everything = slice_layers(two_fluid_column, LayerDomain.ABOVE_BIT, 3000.0, 3000.0, ALL_PLACEMENTS, merge=False)
    assert {s.density for s in everything} == {1000.0, 1200.0, 1400.0}

    string_only = slice_layers(two_fluid_column, LayerDomain.ABOVE_BIT, 3000.0, 3000.0, [Placement.STRING])
    assert [s.density for s in string_only] == [1000.0]


def test_below_bit_window(two_fluid_column):
    segments = slice_layers(two_fluid_column, LayerDomain.BELOW_BIT, 1000.0, 2500.0)
    assert [(s.density, s.top_md, s.bottom_md) for s in segments] == [
        (1400.0, 1500.0, 2500.0),
        (1200.0, 1000.0, 1500.0),
    ]


def test_zero_length_dropped():
    layers = [FluidLayer(1200.0, 500.0, 500.0), FluidLayer(1200.0, 1500.0, 2000.0)]
    assert slice_layers(layers, LayerDomain.ABOVE_BIT, 1000.0, 1000.0) == []


def test_merge_touching_same_density():
    layers = [
        FluidLayer(1200.0, 0.0, 500.0),
        FluidLayer(1200.0, 500.0, 1000.0),
        FluidLayer(1300.0, 1000.0, 1500.0),
        FluidLayer(1300.0, 1600.0, 2000.0),
    ]
    segments = slice_layers(layers, LayerDomain.ABOVE_BIT, 2000.0, 2000.0)
    assert [(s.density, s.top_md, s.bottom_md) for s in segments] == [
        (1300.0, 1600.0, 2000.0),
        (1300.0, 1000.0, 1500.0),
        (1200.0, 0.0, 1000.0),
    ]


def test_merge_keeps_different_rheology_apart():
    thick = RheologyOverride(k=0.9, n=0.6)
    layers = [FluidLayer(1200.0, 0.0, 500.0), FluidLayer(1200.0, 500.0, 1000.0, rheology=thick)]
    segments = slice_layers(layers, LayerDomain.ABOVE_BIT, 1000.0, 1000.0)
    assert len(segments) == 2
    assert segments[0].rheology == thick
