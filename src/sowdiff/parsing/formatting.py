"""
Formatting normalizer.

Reduces raw ``w:rPr`` / ``w:pPr`` property elements to the comparable
``RunFormatting`` and ``ParagraphFormatting`` records. Unit conversions
happen here; defaults do not. An attribute absent from the markup stays
``None`` so that "unset" and "explicitly left" remain distinguishable.
"""

from lxml import etree

from sowdiff.models.document import Alignment, ParagraphFormatting, RunFormatting
from sowdiff.parsing.ooxml import child, to_int, val

_JUSTIFICATION = {
    "left": Alignment.LEFT,
    "start": Alignment.LEFT,
    "center": Alignment.CENTER,
    "right": Alignment.RIGHT,
    "end": Alignment.RIGHT,
    "both": Alignment.JUSTIFY,
    "distribute": Alignment.JUSTIFY,
}

_FALSE_VALUES = {"0", "false", "off", "none"}


def normalize_alignment(value: str | None) -> Alignment | None:
    """Map a ``w:jc`` value to an alignment; unknown values fall back to left."""
    if value is None:
        return None
    return _JUSTIFICATION.get(value, Alignment.LEFT)


def half_points_to_points(value: str | None) -> float | None:
    size = to_int(value)
    if size is None:
        return None
    return size / 2


def _toggle(element: etree._Element | None) -> bool | None:
    """On/off properties are true when present unless ``w:val`` says otherwise."""
    if element is None:
        return None
    setting = val(element)
    if setting is None:
        return True
    return setting.lower() not in _FALSE_VALUES


def parse_run_properties(rpr: etree._Element | None) -> RunFormatting:
    if rpr is None:
        return RunFormatting()

    underline = child(rpr, "u")
    underline_value = None
    if underline is not None:
        underline_value = (val(underline) or "single").lower() not in _FALSE_VALUES

    fonts = child(rpr, "rFonts")
    font_family = None
    if fonts is not None:
        font_family = val(fonts, "ascii") or val(fonts, "hAnsi")

    return RunFormatting(
        bold=_toggle(child(rpr, "b")),
        italic=_toggle(child(rpr, "i")),
        underline=underline_value,
        strike=_toggle(child(rpr, "strike")),
        font_size=half_points_to_points(val(child(rpr, "sz"))),
        font_family=font_family,
        color=val(child(rpr, "color")),
        highlight=val(child(rpr, "highlight")),
    )


def parse_paragraph_properties(ppr: etree._Element | None) -> ParagraphFormatting:
    if ppr is None:
        return ParagraphFormatting()

    ind = child(ppr, "ind")
    first_line = to_int(val(ind, "firstLine"))
    hanging = to_int(val(ind, "hanging"))
    if first_line is None and hanging is not None:
        first_line = -hanging

    spacing = child(ppr, "spacing")

    return ParagraphFormatting(
        alignment=normalize_alignment(val(child(ppr, "jc"))),
        indent_left=to_int(val(ind, "left") or val(ind, "start")),
        indent_right=to_int(val(ind, "right") or val(ind, "end")),
        indent_first_line=first_line,
        spacing_before=to_int(val(spacing, "before")),
        spacing_after=to_int(val(spacing, "after")),
        line_spacing=to_int(val(spacing, "line")),
        style_id=val(child(ppr, "pStyle")),
        outline_level=to_int(val(child(ppr, "outlineLvl"))),
    )


def effective_alignment(formatting: ParagraphFormatting) -> Alignment:
    """Alignment used for comparison: unset means left."""
    return formatting.alignment or Alignment.LEFT
