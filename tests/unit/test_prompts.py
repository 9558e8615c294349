import pytest

from repair_vision.prompts import build_damage_analysis_prompt, build_repair_preview_prompt


@pytest.mark.unit
def test_analysis_prompt_names_wire_keys_and_rate():
    """Should fix the JSON keys and quote the exchange rate"""
    prompt = build_damage_analysis_prompt("dent", usd_to_rwf_rate=1450)
    for key in ('"vehicle"', '"costs"', '"costUSD"', '"costRWF"', '"suggestion"'):
        assert key in prompt
    assert "1 USD = 1450 RWF" in prompt
    assert 'User description: "dent"' in prompt
    assert "in English" in prompt


@pytest.mark.unit
def test_analysis_prompt_language():
    """Should request part and damage text in Swahili"""
    assert "in Swahili" in build_damage_analysis_prompt(None, language="sw")


@pytest.mark.unit
@pytest.mark.parametrize("description", [None, "", "   "])
def test_missing_description_becomes_none(description):
    """Should substitute 'none' for a blank description"""
    assert 'User Description of Damage: "none"' in build_repair_preview_prompt(
        description
    )
