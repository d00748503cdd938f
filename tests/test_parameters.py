import math

import pytest

from nanodesign.parameters import DEFAULT, GEARY_2014_DNA, GEARY_2014_RNA, INTER_CENTER_GAP, OLD_ENSNANO, Parameters


def test_default_is_geary_dna():
    assert DEFAULT is GEARY_2014_DNA
    assert DEFAULT.z_step == pytest.approx(0.332)
    assert DEFAULT.bases_per_turn == pytest.approx(10.44)


@pytest.mark.parametrize("params", [GEARY_2014_DNA, GEARY_2014_RNA])
def test_inter_center_gap_is_shared(params):
    assert params.inter_center_gap == pytest.approx(INTER_CENTER_GAP)


def test_old_ensnano_has_no_inclination():
    assert OLD_ENSNANO.inclination == 0.0
    assert OLD_ENSNANO.helix_radius == 1.0


def test_dist_ac_combines_rise_and_chord():
    chord = 2.0 * DEFAULT.helix_radius * math.sin(math.pi / DEFAULT.bases_per_turn)
    assert DEFAULT.dist_ac2() == pytest.approx(chord)
    assert DEFAULT.dist_ac() == pytest.approx(math.hypot(chord, DEFAULT.z_step))


def test_payload_fills_missing_fields_from_default():
    params = Parameters.from_payload({"z_step": 0.4})
    assert params.z_step == 0.4
    assert params.helix_radius == DEFAULT.helix_radius
    assert Parameters.from_payload(params.to_payload()) == params


def test_formatted_string_lists_fields():
    text = DEFAULT.formatted_string()
    assert "Radius: 0.930 nm" in text
    assert text.endswith("\n")
