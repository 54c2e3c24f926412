import json
import math

import pytest

from statedump.core.grammar import Variant
from statedump.engine.encode import (
    encode,
    encode_array,
    encode_number,
    encode_object,
    encode_string,
    scalar_variant,
)


@pytest.mark.parametrize("text", ['say "hi"', "C:\\path", "two\nlines\r\n", "\x01\x1f\b\f\t", "é ☃ 🙂", ""])
def test_strings_are_valid_json(text: str) -> None:
    encoded = encode_string(text)
    assert json.loads(encoded) == text
    assert "\n" not in encoded and "\t" not in encoded and "\r" not in encoded


def test_control_characters_use_unicode_escapes() -> None:
    assert encode_string("\x01") == '"\\u0001"'
    assert encode_string("\n") == '"\\n"'


def test_invalid_utf8_bytes_use_byte_escapes() -> None:
    assert encode_string(b"\xff\x00ok") == '"\\xFF\\u0000ok"'
    assert encode(b"caf\xc3\xa9") == '"café"'


def test_lone_surrogates_use_unicode_escapes() -> None:
    assert encode_string("\ud800") == '"\\uD800"'


@pytest.mark.parametrize(
    "value,expected",
    [
        (5, "5"),
        (-17, "-17"),
        (1.5, "1.5"),
        (0.1, "0.1"),
        (1e100, "1e+100"),
        (math.inf, "inf"),
        (-math.inf, "-inf"),
        (math.nan, "-nan"),
        (-math.nan, "-nan"),
    ],
)
def test_numbers(value: float, expected: str) -> None:
    assert encode_number(value) == expected
    assert encode(value) == expected


def test_booleans_and_absent() -> None:
    assert encode(True) == "true"
    assert encode(False) == "false"
    assert encode(None) == ""


def test_scalar_variant_checks_bool_before_int() -> None:
    assert scalar_variant(True) is Variant.BOOLEAN
    assert scalar_variant(1) is Variant.NUMBER
    assert scalar_variant(b"x") is Variant.STRING
    assert scalar_variant(None) is Variant.ABSENT
    assert scalar_variant([]) is None


def test_arrays_keep_positions() -> None:
    assert encode_array([1, "b"]) == '[1,"b"]'
    assert encode_array(["cr", 0]) == '["cr",0]'
    assert encode_array([None, 2]) == "[null,2]"


def test_objects_keep_provider_order() -> None:
    assert encode_object([("zeta", 1), ("alpha", "x"), ("flag", False)]) == '{"zeta":1,"alpha":"x","flag":false}'
    assert encode_object([]) == ""


def test_encoder_never_raises_on_broken_str() -> None:
    class Broken:
        def __str__(self) -> str:
            raise RuntimeError("boom")

    out = encode(Broken(), Variant.STRING)
    assert out.startswith('"<') and "Broken object at" in out


class ShoutingFloat(float):
    def __repr__(self) -> str:
        raise RuntimeError("subclass repr must not run")


class TaggedInt(int):
    def __repr__(self) -> str:
        return "TaggedInt(7)"


def test_number_subclasses_use_builtin_reprs() -> None:
    assert encode(ShoutingFloat(1.5), Variant.NUMBER) == "1.5"
    assert encode(ShoutingFloat(float("-inf"))) == "-inf"
    assert encode(TaggedInt(7), Variant.NUMBER) == "7"


def test_int_past_digit_limit_degrades_to_string() -> None:
    huge = 10**5000
    assert encode(huge) == f'"<int: {huge.bit_length()} bits>"'
    assert encode(-huge) == f'"<int: {huge.bit_length()} bits>"'
