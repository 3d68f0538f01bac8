import pytest

from picture_project.framework.candidates import CandidateDescriptor
from picture_project.framework.config import parse_styles, styles_from_config
from picture_project.framework.errors import InvalidSourceConfigError, PictureError
from picture_project.framework.variants import Manipulation


def test_descriptor_shapes_are_normalised():
    styles = parse_styles(
        {
            "Card": {
                "default": {"method": "Fill", "arguments": [10, 10]},
                "sources": {
                    "(min-width: 600px)": [
                        {"descriptor": "2x", "manipulations": [{"method": "Fill", "arguments": [20, 20]}, {"method": "Quality", "arguments": [70]}]},
                        {"method": "noop", "descriptor": 480},
                    ]
                },
            }
        }
    )

    card = styles["card"]
    assert card.name == "Card"
    assert card.default == (CandidateDescriptor((Manipulation("Fill", (10, 10)),), ""),)
    source = card.sources[0]
    assert source.media == "(min-width: 600px)"
    assert source.descriptors[0] == CandidateDescriptor(
        (Manipulation("Fill", (20, 20)), Manipulation("Quality", (70,))), "2x"
    )
    assert source.descriptors[1] == CandidateDescriptor((Manipulation("noop"),), "480")


def test_positional_sources_read_media_from_entry():
    styles = parse_styles(
        {
            "Hero": {
                "default": [{"method": "Fill", "arguments": [10, 10]}],
                "sources": [
                    {"media": "(orientation: portrait)", "candidates": [{"method": "ScaleWidth", "arguments": [5]}]},
                    {"candidates": [{"method": "ScaleWidth", "arguments": [8]}]},
                ],
            }
        }
    )

    assert [s.media for s in styles["hero"].sources] == ["(orientation: portrait)", ""]


def test_numeric_source_keys_are_positional():
    styles = parse_styles(
        {
            "Hero": {
                "default": [{"method": "Fill", "arguments": [10, 10]}],
                "sources": {0: {"media": "print", "candidates": [{"method": "Fill", "arguments": [1, 1]}]}},
            }
        }
    )

    assert styles["hero"].sources[0].media == "print"


@pytest.mark.parametrize(
    "sources",
    [
        {"(min-width: 1px)": "Fill"},
        {"(min-width: 1px)": 5},
        ["not-a-mapping"],
        [[{"method": "Fill", "arguments": [1, 1]}]],
        {"(min-width: 1px)": [{"method": "Fill", "arguments": "10x10"}]},
        {"(min-width: 1px)": [{"method": "Fill", "arguments": [[1, 2]]}]},
        {"(min-width: 1px)": [{"method": "", "arguments": [1]}]},
        {"(min-width: 1px)": [{"method": "Fill", "size": [1]}]},
        "bogus",
    ],
)
def test_invalid_source_config_raises(sources):
    with pytest.raises(InvalidSourceConfigError):
        parse_styles({"Hero": {"default": [{"method": "Fill", "arguments": [1, 1]}], "sources": sources}})


def test_duplicate_style_names_differing_in_case_raise():
    with pytest.raises(PictureError, match="Duplicate style name"):
        parse_styles({"Hero": {}, "hero": {}})


def test_unknown_style_keys_raise():
    with pytest.raises(PictureError, match="Unknown keys"):
        parse_styles({"Hero": {"defaults": []}})


def test_styles_from_config_reads_picture_section():
    cfg = {"picture": {"styles": {"Thumb": {"default": {"method": "Fill", "arguments": [5, 5]}}}}}

    assert list(styles_from_config(cfg)) == ["thumb"]
    assert styles_from_config({}) == {}
