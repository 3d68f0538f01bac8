import pytest

from picture_project.framework.errors import MalformedVariantError
from picture_project.framework.variants import (
    Manipulation,
    encode_manipulation,
    encode_variant,
    parse_segment,
    parse_variant,
)


def test_encode_manipulation_uses_method_and_base64_json_arguments():
    assert encode_manipulation(Manipulation("Fill", (800, 450))) == "FillWzgwMCw0NTBd"
    assert encode_manipulation(Manipulation("Fill", (100, 100))) == "FillWzEwMCwxMDBd"


def test_parse_variant_round_trips_a_chain():
    chain = (
        Manipulation("Fill", (800, 450)),
        Manipulation("Pad", (400, 400, "FF0000")),
        Manipulation("Quality", (80,)),
        Manipulation("ExtRewrite", ("jpg", "webp")),
    )

    identifier = encode_variant(chain)

    assert identifier.count("_") == len(chain) - 1
    assert parse_variant(identifier) == chain
    assert encode_variant(parse_variant(identifier)) == identifier


def test_encoded_segments_never_contain_separator():
    # "???" encodes to a group ending in "/", which is "_" in the url-safe alphabet.
    manipulation = Manipulation("Pad", (10, 10, "????"))
    segment = encode_manipulation(manipulation)

    assert "_" not in segment
    assert "~" in segment
    assert parse_variant(segment) == (manipulation,)


def test_parse_variant_empty_identifier_is_empty_chain():
    assert parse_variant("") == ()
    assert parse_variant("   ") == ()


def test_parse_segment_is_case_insensitive_and_canonicalises_name():
    assert parse_segment("fillWzgwMCw0NTBd", ["Fill", "FillMax"]) == Manipulation("Fill", (800, 450))


def test_parse_segment_prefers_longest_method_name():
    segment = encode_manipulation(Manipulation("FillMax", (10, 20)))

    assert parse_segment(segment, ["Fill", "FillMax"]) == Manipulation("FillMax", (10, 20))


@pytest.mark.parametrize(
    "identifier",
    [
        "BogusWzEwXQ",
        "Fill",
        "Fill!!!",
        "FillW3siYSI6MX1d",  # [{"a":1}]
        "FilleyJhIjoxfQ",  # {"a":1}
        "FillWzEwMCwxMDBd_",
    ],
)
def test_parse_variant_rejects_undecodable_segments(identifier):
    with pytest.raises(MalformedVariantError):
        parse_variant(identifier)


def test_manipulation_requires_scalar_arguments():
    with pytest.raises(TypeError):
        Manipulation("Fill", ([1, 2],))

    assert Manipulation("noop").is_noop
    assert Manipulation("Fill", [1, 2]).arguments == (1, 2)
