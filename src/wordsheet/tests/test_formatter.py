"""Tests for flattening sense-groups into sheet text."""
from wordsheet.models.records import (
    GeneralExample,
    Meaning,
    RelatedForm,
    SenseGroup,
)
from wordsheet.models.schema import CONTENT_FIELDS
from wordsheet.services.formatter import (
    first_definition,
    flatten_sense_groups,
    format_pronunciation,
    format_related_forms,
    sentinel_content,
)

GROUPS = [
    SenseGroup(
        part_of_speech="verb",
        meanings=[
            Meaning("to move fast on foot", "She runs every morning.", "бегать"),
            Meaning("to manage", "He runs a shop.", "управлять"),
        ],
        general_examples=[GeneralExample("Run for your life!", "Спасайся!")],
        synonyms=["sprint", "dash"],
        notes=["irregular: ran, run"],
        pronunciation={"uk": "/rʌn/", "us": "/rʌn/"},
        related_forms=[RelatedForm("runner", "noun")],
    ),
    SenseGroup(
        part_of_speech="noun",
        meanings=[Meaning("an act of running", "", "пробежка")],
        antonyms=["walk"],
        related_forms=[RelatedForm("runner", "noun"), RelatedForm("rerun")],
    ),
]


def test_flatten_keeps_group_order():
    content = flatten_sense_groups(GROUPS)

    assert set(content) == set(CONTENT_FIELDS)
    assert content["part_of_speech"] == "verb, noun"
    assert content["definitions"] == (
        "[verb]\n1. to move fast on foot\n2. to manage"
        "\n\n"
        "[noun]\n1. an act of running"
    )
    assert content["translations"].startswith("[verb]\n1. бегать\n2. управлять")


def test_flatten_examples_and_lists():
    content = flatten_sense_groups(GROUPS)

    assert content["examples"] == (
        "[verb]\n1. She runs every morning.\n2. He runs a shop.\n• Run for your life! — Спасайся!"
    )
    assert content["synonyms"] == "[verb]\n• sprint\n• dash"
    # Groups without entries are left out
    assert content["antonyms"] == "[noun]\n• walk"
    assert content["notes"] == "[verb]\n• irregular: ran, run"


def test_pronunciation_and_related_forms():
    assert format_pronunciation(GROUPS) == "UK /rʌn/; US /rʌn/"
    assert format_pronunciation([SenseGroup("noun")]) == ""
    assert format_related_forms(GROUPS) == "runner (noun), rerun"


def test_sentinel_content():
    content = sentinel_content("Service error: timeout", "—")

    assert content["part_of_speech"] == "Service error: timeout"
    assert all(content[name] == "—" for name in CONTENT_FIELDS if name != "part_of_speech")


def test_first_definition():
    content = flatten_sense_groups(GROUPS)

    assert first_definition(content["definitions"]) == "to move fast on foot"
    assert first_definition("• plain line") == "plain line"
    assert first_definition("—") == ""
    assert first_definition("") == ""
