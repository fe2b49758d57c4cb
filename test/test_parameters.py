import pytest

from psr.reconstruction.parameters import ReconstructionParameters


def test_defaults():
    parameters = ReconstructionParameters()
    assert parameters.radius_edge_ratio_bound == 2.5
    assert parameters.cell_radius_factor == 0.2
    assert parameters.max_vertices == 10000000
    assert parameters.enlarge_ratio == 1.5
    assert parameters.lam == 0.1
    assert parameters.nnz_per_row == 9
    assert parameters.normalized_divergence is False
    assert parameters.seed_enlarged_sphere is False
    assert parameters.verbose is False


def test_set_valid_values():
    parameters = ReconstructionParameters()
    parameters.set('radius_edge_ratio_bound', 0)
    parameters.set('cell_radius_factor', 0.5)
    parameters.set('max_vertices', 2000)
    parameters.set('enlarge_ratio', 2)
    parameters.set('lam', 0.0)
    parameters.set('normalized_divergence', True)
    parameters.set('seed_enlarged_sphere', 1)
    assert parameters.radius_edge_ratio_bound == 0.0
    assert parameters.cell_radius_factor == 0.5
    assert parameters.max_vertices == 2000
    assert parameters.enlarge_ratio == 2.0
    assert parameters.lam == 0.0
    assert parameters.normalized_divergence is True
    assert parameters.seed_enlarged_sphere is True


@pytest.mark.parametrize("name, value", [('radius_edge_ratio_bound', -1.0),
                                         ('cell_radius_factor', -0.1),
                                         ('max_vertices', 0),
                                         ('enlarge_ratio', 0.5),
                                         ('lam', -0.1),
                                         ('nnz_per_row', 0),
                                         ('unknown', 1.0)])
def test_set_invalid_values(name, value):
    parameters = ReconstructionParameters()
    with pytest.raises(ValueError):
        parameters.set(name, value)


def test_str_lists_values():
    text = str(ReconstructionParameters())
    assert "Radius Edge Ratio Bound: 2.5" in text
    assert "Lambda: 0.1" in text
    assert "Max Vertices: 10000000" in text
    assert "Seed Enlarged Sphere: False" in text
