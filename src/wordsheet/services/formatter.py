"""Flattening of enrichment sense-groups into the sheet's display fields."""
from typing import Dict, Iterable, List

from wordsheet.models.records import SenseGroup
from wordsheet.models.schema import CONTENT_FIELDS

BULLET = "• "
BLOCK_SEPARATOR = "\n\n"


def _header(group: SenseGroup) -> str:
    return f"[{group.part_of_speech or 'other'}]"


def _numbered(lines: Iterable[str]) -> List[str]:
    return [f"{i}. {line}" for i, line in enumerate(lines, start=1)]


def _bulleted(lines: Iterable[str]) -> List[str]:
    return [f"{BULLET}{line}" for line in lines]


def _join_blocks(groups: List[SenseGroup], lines_for) -> str:
    """Join per-group blocks; groups without lines are left out."""
    blocks = []
    for group in groups:
        lines = [line for line in lines_for(group) if line]
        if lines:
            blocks.append("\n".join([_header(group), *lines]))
    return BLOCK_SEPARATOR.join(blocks)


def _example_lines(group: SenseGroup) -> List[str]:
    lines = _numbered(m.example for m in group.meanings if m.example)
    for general in group.general_examples:
        text = general.example
        if general.translation:
            text = f"{text} — {general.translation}"
        lines.append(f"{BULLET}{text}")
    return lines


def format_pronunciation(groups: List[SenseGroup]) -> str:
    """Format the first available pronunciation as ``UK /../; US /../``."""
    for group in groups:
        variants = [
            f"{region.upper()} {value}"
            for region, value in group.pronunciation.items()
            if value
        ]
        if variants:
            return "; ".join(variants)
    return ""


def format_related_forms(groups: List[SenseGroup]) -> str:
    seen = set()
    forms = []
    for group in groups:
        for form in group.related_forms:
            key = (form.word.casefold(), form.part_of_speech.casefold())
            if not form.word or key in seen:
                continue
            seen.add(key)
            forms.append(f"{form.word} ({form.part_of_speech})" if form.part_of_speech else form.word)
    return ", ".join(forms)


def flatten_sense_groups(groups: List[SenseGroup]) -> Dict[str, str]:
    """Turn sense-groups into the content fields of a record, in the order returned."""
    return {
        "part_of_speech": ", ".join(g.part_of_speech for g in groups if g.part_of_speech),
        "definitions": _join_blocks(groups, lambda g: _numbered(m.definition for m in g.meanings if m.definition)),
        "examples": _join_blocks(groups, _example_lines),
        "translations": _join_blocks(groups, lambda g: _numbered(m.translation for m in g.meanings if m.translation)),
        "synonyms": _join_blocks(groups, lambda g: _bulleted(g.synonyms)),
        "antonyms": _join_blocks(groups, lambda g: _bulleted(g.antonyms)),
        "notes": _join_blocks(groups, lambda g: _bulleted(g.notes)),
        "pronunciation": format_pronunciation(groups),
        "related_forms": format_related_forms(groups),
    }


def sentinel_content(error_description: str, placeholder: str = "—") -> Dict[str, str]:
    """Content fields marking a failed lookup."""
    content = {name: placeholder for name in CONTENT_FIELDS}
    content["part_of_speech"] = error_description
    return content


def first_definition(definitions: str, placeholder: str = "—") -> str:
    """Get the first definition line without its header or number."""
    for line in definitions.splitlines():
        line = line.strip()
        if not line or line == placeholder or (line.startswith("[") and line.endswith("]")):
            continue
        number, dot, rest = line.partition(". ")
        if dot and number.isdigit():
            line = rest
        if line.startswith(BULLET):
            line = line[len(BULLET):]
        return line.strip()
    return ""
