from reddidna.evidence import NO_SOURCES, EvidencePanel, EvidenceLookup, evidenced_fields
from reddidna.loading import LoadingFrame
from reddidna.models import EvidencedValue, PersonaReport

_BAR_WIDTH = 20
_AXIS_SLOTS = 10


def _bar(value: float) -> str:
    # Not clamped: 150 draws past the track, negatives draw nothing.
    filled = round(value * _BAR_WIDTH / 100)
    return "█" * filled + "░" * (_BAR_WIDTH - filled)


def _axis(value: float) -> str:
    pos = round(value * _AXIS_SLOTS / 100)
    return "─" * pos + "●" + "─" * (_AXIS_SLOTS - pos)


def _cite_count(sources: tuple) -> str:
    return f" [{len(sources)}]" if sources else ""


def _section_list(title: str, items: tuple[EvidencedValue, ...]) -> list[str]:
    lines = [f"### {title}\n"]
    if not items:
        lines.append("*No information available.*")
    for item in items:
        lines.append(f"- {item}{_cite_count(item.sources)}")
    lines.append("")
    return lines


def format_loading(identity: str, frame: LoadingFrame) -> str:
    return f"{frame.step.message}  Generating persona for u/{identity}  {frame.clock}  [{frame.step.image}]"


def format_panel(panel: EvidencePanel) -> str:
    """Markdown for the open citation panel."""
    lines = ["### Evidence & Sources\n"]
    if panel.empty:
        lines.append(NO_SOURCES)
    for c in panel.citations:
        lines.append(f'> "{c.quote}"\n>\n> {c.url}\n')
    return "\n".join(lines)


def format_report(identity: str, report: PersonaReport, *, show_sources: bool = False) -> str:
    """Format a persona report into a Markdown string.

    ``[n]`` after a value is the number of citations backing it; with
    ``show_sources`` every field's citations are appended at the end.
    """
    sections = [f"# u/{identity}\n", f"## {report.archetype_label}\n"]

    if report.profile_image:
        sections.append(f"![{identity}'s profile]({report.profile_image})\n")
    if report.summary_quote is not None and str(report.summary_quote):
        sections.append(f'> *"{report.summary_quote}"*\n')

    sections.append("| Field | Value |")
    sections.append("|---|---|")
    for name, item in report.profile_info.items():
        sections.append(f"| {name.upper()} | {item}{_cite_count(item.sources)} |")
    sections.append("")

    if report.traits:
        sections.append("### TRAITS\n")
        for t in report.traits:
            mark = "x" if t.active else " "
            sections.append(f"- [{mark}] {t.name}{_cite_count(t.sources)}")
        sections.append("")

    sections.append("### MOTIVATIONS\n")
    for m in report.motivations:
        sections.append(f"- `{m.name.upper():<14}` `{_bar(m.value)}` {m.value}%{_cite_count(m.sources)}")
    sections.append("")

    if report.personality:
        sections.append("### PERSONALITY\n")
        for axis in report.personality:
            left, right = axis.poles
            sections.append(f"- {left} `{_axis(axis.value)}` {right} ({axis.value}){_cite_count(axis.sources)}")
        sections.append("")

    sections += _section_list("BEHAVIOUR & HABITS", report.behaviors)
    sections += _section_list("FRUSTRATIONS", report.frustrations)
    sections += _section_list("GOALS & NEEDS", report.goals)

    if report.quote is not None and str(report.quote):
        sections.append(f'> "{report.quote}"\n')

    if show_sources:
        lookup = EvidenceLookup()
        sections.append("## Sources\n")
        for path, item in evidenced_fields(report):
            sections.append(f"#### `{path}`\n")
            sections.append(format_panel(lookup.open(item.sources)))
            sections.append("")
        lookup.close()

    return "\n".join(sections)
