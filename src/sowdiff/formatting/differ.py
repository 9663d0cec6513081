"""
Formatting differ.

Compares an aligned template/draft section pair paragraph by paragraph and
run by run, by position, and emits typed, severity-tagged differences. Only
positions present in both sections are compared. Every difference whose
compared value comes from the template carries a fix holding exactly that
value, ready to be assigned to the draft paragraph or run.
"""

from typing import Iterable

import structlog

from sowdiff.models.analysis import (
    AlignmentResult,
    DifferenceLocation,
    DifferenceType,
    FixType,
    FormattingDifference,
    FormattingFix,
    Severity,
)
from sowdiff.models.document import Paragraph, ParagraphFormatting, RunFormatting, Section, TextRun
from sowdiff.parsing.formatting import effective_alignment

logger = structlog.get_logger(__name__)

SNIPPET_CHARS = 50
RUN_LABEL_CHARS = 30


class FormattingDiffer:
    """Emits formatting differences between aligned sections."""

    def diff(self, template: Section, draft: Section) -> list[FormattingDifference]:
        differences: list[FormattingDifference] = []

        for index, (t_para, d_para) in enumerate(zip(template.paragraphs, draft.paragraphs)):
            differences.extend(self._compare_paragraph(draft.id, index, t_para, d_para))

        if len(template.tables) != len(draft.tables):
            differences.append(
                FormattingDifference(
                    type=DifferenceType.TABLE,
                    description=(
                        f"Table count differs: {len(template.tables)} in template "
                        f"vs {len(draft.tables)} in draft"
                    ),
                    template_value=f"{len(template.tables)} tables",
                    draft_value=f"{len(draft.tables)} tables",
                    severity=Severity.HIGH,
                    location=DifferenceLocation(section_id=draft.id),
                )
            )

        return differences

    def diff_documents(
        self,
        template_sections: Iterable[Section],
        draft_sections: Iterable[Section],
        alignment: AlignmentResult,
    ) -> list[FormattingDifference]:
        """Diff every matched pair of an alignment; unmatched sections are skipped."""
        templates = {s.id: s for s in template_sections}
        differences: list[FormattingDifference] = []

        for draft in draft_sections:
            edge = alignment.edge_for(draft.id)
            if edge is None or edge.template_section_id is None:
                continue
            template = templates.get(edge.template_section_id)
            if template is not None:
                differences.extend(self.diff(template, draft))

        logger.debug("formatting_compared", differences=len(differences))
        return differences

    # =========================================================================
    # Paragraph level
    # =========================================================================

    def _compare_paragraph(
        self,
        section_id: str,
        index: int,
        t_para: Paragraph,
        d_para: Paragraph,
    ) -> list[FormattingDifference]:
        t_fmt, d_fmt = t_para.formatting, d_para.formatting
        location = DifferenceLocation(
            section_id=section_id,
            paragraph_index=index,
            text_snippet=d_para.text[:SNIPPET_CHARS],
        )
        differences: list[FormattingDifference] = []

        t_align, d_align = effective_alignment(t_fmt), effective_alignment(d_fmt)
        if t_align != d_align:
            differences.append(
                FormattingDifference(
                    type=DifferenceType.ALIGNMENT,
                    description=(
                        f'Paragraph alignment differs: "{t_align.value}" in template '
                        f'vs "{d_align.value}" in draft'
                    ),
                    template_value=t_align.value,
                    draft_value=d_align.value,
                    severity=Severity.MEDIUM,
                    location=location,
                    fix=FormattingFix(
                        type=FixType.APPLY_TEMPLATE_FORMATTING,
                        paragraph_formatting=ParagraphFormatting(alignment=t_align),
                    ),
                )
            )

        if t_fmt.style_id and t_fmt.style_id != d_fmt.style_id:
            style = {"style_id": t_fmt.style_id}
            if t_fmt.style_name:
                style["style_name"] = t_fmt.style_name
            differences.append(
                FormattingDifference(
                    type=DifferenceType.STYLE,
                    description=(
                        f'Paragraph style differs: "{t_fmt.style_name or t_fmt.style_id}" in template '
                        f'vs "{d_fmt.style_name or d_fmt.style_id or "Normal"}" in draft'
                    ),
                    template_value=t_fmt.style_name or t_fmt.style_id,
                    draft_value=d_fmt.style_name or d_fmt.style_id or "Normal",
                    severity=Severity.HIGH,
                    location=location,
                    fix=FormattingFix(
                        type=FixType.APPLY_TEMPLATE_STYLE,
                        paragraph_formatting=ParagraphFormatting(**style),
                    ),
                )
            )

        if t_fmt.spacing_after and t_fmt.spacing_after != d_fmt.spacing_after:
            differences.append(
                FormattingDifference(
                    type=DifferenceType.SPACING,
                    description="Paragraph spacing after differs",
                    template_value=str(t_fmt.spacing_after),
                    draft_value=str(d_fmt.spacing_after or 0),
                    severity=Severity.LOW,
                    location=location,
                    fix=FormattingFix(
                        type=FixType.APPLY_TEMPLATE_FORMATTING,
                        paragraph_formatting=ParagraphFormatting(spacing_after=t_fmt.spacing_after),
                    ),
                )
            )

        if t_fmt.indent_left and t_fmt.indent_left != d_fmt.indent_left:
            differences.append(
                FormattingDifference(
                    type=DifferenceType.INDENT,
                    description="Left indentation differs",
                    template_value=str(t_fmt.indent_left),
                    draft_value=str(d_fmt.indent_left or 0),
                    severity=Severity.LOW,
                    location=location,
                    fix=FormattingFix(
                        type=FixType.APPLY_TEMPLATE_FORMATTING,
                        paragraph_formatting=ParagraphFormatting(indent_left=t_fmt.indent_left),
                    ),
                )
            )

        if t_para.is_heading and (
            not d_para.is_heading or t_para.heading_level != d_para.heading_level
        ):
            differences.append(self._heading_difference(location, t_para, d_para))

        for run_index, (t_run, d_run) in enumerate(zip(t_para.runs, d_para.runs)):
            differences.extend(self._compare_run(location, run_index, t_run, d_run))

        return differences

    def _heading_difference(
        self,
        location: DifferenceLocation,
        t_para: Paragraph,
        d_para: Paragraph,
    ) -> FormattingDifference:
        template_label = _heading_label(t_para)
        draft_label = _heading_label(d_para) if d_para.is_heading else "Normal"
        heading = {
            name: value
            for name, value in (
                ("style_id", t_para.formatting.style_id),
                ("style_name", t_para.formatting.style_name),
                ("outline_level", t_para.formatting.outline_level),
            )
            if value is not None
        }
        return FormattingDifference(
            type=DifferenceType.HEADING,
            description=(
                f"Heading level differs: {template_label} in template "
                f"vs {draft_label if d_para.is_heading else 'not a heading'} in draft"
            ),
            template_value=template_label,
            draft_value=draft_label,
            severity=Severity.HIGH,
            location=location,
            fix=FormattingFix(
                type=FixType.APPLY_TEMPLATE_STYLE,
                paragraph_formatting=ParagraphFormatting(**heading),
            ) if heading else None,
        )

    # =========================================================================
    # Run level
    # =========================================================================

    def _compare_run(
        self,
        paragraph_location: DifferenceLocation,
        run_index: int,
        t_run: TextRun,
        d_run: TextRun,
    ) -> list[FormattingDifference]:
        t_fmt, d_fmt = t_run.formatting, d_run.formatting
        location = paragraph_location.model_copy(
            update={"run_index": run_index, "text_snippet": d_run.text[:SNIPPET_CHARS]}
        )
        label = d_run.text[:RUN_LABEL_CHARS]
        differences: list[FormattingDifference] = []

        for attribute, on_label in (("bold", "Bold"), ("italic", "Italic")):
            t_value = bool(getattr(t_fmt, attribute))
            d_value = bool(getattr(d_fmt, attribute))
            if t_value == d_value:
                continue
            differences.append(
                FormattingDifference(
                    type=DifferenceType.FONT,
                    description=f'{on_label} formatting differs for "{label}..."',
                    template_value=on_label if t_value else "Normal",
                    draft_value=on_label if d_value else "Normal",
                    severity=Severity.MEDIUM,
                    location=location,
                    fix=FormattingFix(
                        type=FixType.APPLY_TEMPLATE_FONT,
                        run_formatting=RunFormatting(**{attribute: t_value}),
                    ),
                )
            )

        if t_fmt.font_size and t_fmt.font_size != d_fmt.font_size:
            differences.append(
                FormattingDifference(
                    type=DifferenceType.FONT,
                    description=(
                        f"Font size differs: {_points(t_fmt.font_size)}pt in template "
                        f"vs {_points(d_fmt.font_size) if d_fmt.font_size else 'default'}pt in draft"
                    ),
                    template_value=f"{_points(t_fmt.font_size)}pt",
                    draft_value=f"{_points(d_fmt.font_size) if d_fmt.font_size else 'default'}pt",
                    severity=Severity.HIGH,
                    location=location,
                    fix=FormattingFix(
                        type=FixType.APPLY_TEMPLATE_FONT,
                        run_formatting=RunFormatting(font_size=t_fmt.font_size),
                    ),
                )
            )

        if t_fmt.font_family and t_fmt.font_family != d_fmt.font_family:
            differences.append(
                FormattingDifference(
                    type=DifferenceType.FONT,
                    description=(
                        f'Font family differs: "{t_fmt.font_family}" in template '
                        f'vs "{d_fmt.font_family or "default"}" in draft'
                    ),
                    template_value=t_fmt.font_family,
                    draft_value=d_fmt.font_family or "default",
                    severity=Severity.HIGH,
                    location=location,
                    fix=FormattingFix(
                        type=FixType.APPLY_TEMPLATE_FONT,
                        run_formatting=RunFormatting(font_family=t_fmt.font_family),
                    ),
                )
            )

        return differences


def _heading_label(paragraph: Paragraph) -> str:
    if paragraph.heading_level is None:
        return "Heading"
    return f"Heading {paragraph.heading_level}"


def _points(size: float) -> str:
    return f"{size:g}"


def apply_fix(paragraph: Paragraph, difference: FormattingDifference) -> Paragraph:
    """
    Apply a difference's fix to a draft paragraph.

    Paragraph fixes update the paragraph formatting; run fixes update the run
    at the difference's run index, or every run when no index is recorded.
    Returns a new paragraph; the input is left untouched.
    """
    fix = difference.fix
    if fix is None:
        return paragraph

    values = fix.values()
    if fix.paragraph_formatting is not None:
        return paragraph.model_copy(
            update={"formatting": paragraph.formatting.model_copy(update=values)}
        )

    run_index = difference.location.run_index
    runs = [
        run.model_copy(update={"formatting": run.formatting.model_copy(update=values)})
        if run_index is None or i == run_index
        else run
        for i, run in enumerate(paragraph.runs)
    ]
    return paragraph.model_copy(update={"runs": runs})
