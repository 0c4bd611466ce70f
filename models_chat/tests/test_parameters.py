import pytest

from models_chat.domain.exceptions import ValidationError
from models_chat.domain.models import ChatRequest
from models_chat.domain.parameters import NOT_SET, PARAMETER_NAMES, ParameterSet


def test_unset_parameters_format_as_sentinel():
    mp = ParameterSet()
    for name in PARAMETER_NAMES:
        assert mp.format(name) == NOT_SET
    assert mp.format("no-such-thing") == NOT_SET


def test_set_and_format_values():
    mp = ParameterSet()
    mp.set_by_name("temperature", "0.7")
    mp.set_by_name("top-p", "0.95")
    mp.set_by_name("max-tokens", "256")
    assert float(mp.format("temperature")) == pytest.approx(0.7)
    assert mp.format("temperature") == "0.700000"
    assert mp.format("top-p") == "0.950000"
    assert mp.format("max-tokens") == "256"


def test_unknown_parameter_leaves_state_untouched():
    mp = ParameterSet(temperature=0.3)
    with pytest.raises(ValidationError) as exc_info:
        mp.set_by_name("unknown", "1")
    assert exc_info.value.code == "UNKNOWN_PARAMETER"
    assert "unknown" in exc_info.value.message
    assert exc_info.value.extra["field"] == "unknown"
    assert mp == ParameterSet(temperature=0.3)


@pytest.mark.parametrize("name, value", [("max-tokens", "1.5"), ("max-tokens", "lots"), ("temperature", "hot"), ("top-p", "")])
def test_malformed_value_names_field(name, value):
    mp = ParameterSet()
    with pytest.raises(ValidationError) as exc_info:
        mp.set_by_name(name, value)
    assert exc_info.value.code == "MALFORMED_VALUE"
    assert name in exc_info.value.message
    assert mp == ParameterSet()


@pytest.mark.parametrize("value", ["nan", "inf", "-inf", "Infinity"])
def test_non_finite_numbers_are_rejected(value):
    mp = ParameterSet(temperature=0.3)
    with pytest.raises(ValidationError) as exc_info:
        mp.set_by_name("temperature", value)
    assert exc_info.value.code == "MALFORMED_VALUE"
    assert exc_info.value.extra["field"] == "temperature"
    assert mp == ParameterSet(temperature=0.3)


def test_value_persists_until_overwritten():
    mp = ParameterSet()
    mp.set_by_name("temperature", "0.1")
    mp.set_by_name("max-tokens", "10")
    mp.set_by_name("temperature", "0.9")
    assert mp.temperature == pytest.approx(0.9)
    assert mp.max_tokens == 10


def test_apply_to_copies_only_set_fields():
    mp = ParameterSet(max_tokens=100)
    req = ChatRequest(model="m", messages=[], temperature=0.5)
    mp.apply_to(req)
    assert req.max_tokens == 100
    assert req.temperature == 0.5
    assert req.top_p is None
    payload = req.to_payload()
    assert payload["max_tokens"] == 100
    assert "top_p" not in payload


def test_populate_from_options_skips_empty_values():
    mp = ParameterSet()
    mp.populate_from_options({"max-tokens": "", "temperature": "0.2", "top-p": None})
    assert mp == ParameterSet(temperature=0.2)


def test_populate_from_options_uses_same_validation():
    mp = ParameterSet()
    with pytest.raises(ValidationError) as exc_info:
        mp.populate_from_options({"top-p": "abc"})
    assert exc_info.value.extra["field"] == "top-p"
