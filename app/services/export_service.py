from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from typing import Any

from bs4 import BeautifulSoup
from docx import Document
from docx.shared import Pt, RGBColor
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from app.core.catalog import get_catalog_value

EXPORT_FORMATS = {
    "text": ("txt", "text/plain; charset=utf-8"),
    "docx": ("docx", "application/vnd.openxmlformats-officedocument.wordprocessingml.document"),
    "pdf": ("pdf", "application/pdf"),
}

_XML_UNSAFE_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")

_SECTION_RULES = {
    "PROFESSIONAL SUMMARY": "==================",
    "EXPERIENCE": "==========",
    "EDUCATION": "=========",
    "SKILLS": "======",
    "PROJECTS": "========",
}


@dataclass
class ExportedFile:
    filename: str
    media_type: str
    content: bytes


def _xml_safe(value: Any) -> Any:
    """Replace control characters that Word XML cannot hold."""
    if isinstance(value, str):
        return _XML_UNSAFE_RE.sub(" ", value)
    if isinstance(value, dict):
        return {key: _xml_safe(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_xml_safe(item) for item in value]
    return value


def _items(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _entries(content: dict[str, Any], key: str) -> list[dict[str, Any]]:
    return [item for item in _items(content.get(key)) if isinstance(item, dict)]


def _personal_info(content: dict[str, Any]) -> dict[str, Any]:
    info = content.get("personalInfo")
    return info if isinstance(info, dict) else {}


def _skills(content: dict[str, Any]) -> list[str]:
    return [str(skill) for skill in _items(content.get("skills")) if skill]


def safe_filename(title: str | None) -> str:
    cleaned = re.sub(r"[^a-zA-Z0-9]", "_", title or "")
    return cleaned or "resume"


def _parse_date(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value.strip():
        return None
    raw = value.strip()
    for fmt, width in (("%Y-%m-%d", 10), ("%Y-%m", 7), ("%Y", 4)):
        try:
            return datetime.strptime(raw[:width], fmt)
        except ValueError:
            continue
    return None


def _month_year(value: Any) -> str:
    parsed = _parse_date(value)
    if parsed:
        return parsed.strftime("%b %Y")
    return str(value).strip() if value else ""


def _year(value: Any) -> str:
    parsed = _parse_date(value)
    if parsed:
        return str(parsed.year)
    return str(value).strip() if value else ""


def _date_range(item: dict[str, Any], formatter) -> str:
    if item.get("date") and not item.get("startDate"):
        return str(item["date"])
    start = formatter(item.get("startDate"))
    end = "Present" if item.get("current") else formatter(item.get("endDate"))
    return " - ".join(part for part in (start, end) if part)


def _technologies(project: dict[str, Any]) -> str:
    value = project.get("technologies")
    if isinstance(value, list):
        return ", ".join(str(item) for item in value if item)
    return str(value or "")


def _contact_line(info: dict[str, Any]) -> str:
    fields = [info.get(key) for key in ("email", "phone", "location", "linkedin", "website")]
    return " | ".join(str(value) for value in fields if value)


def _display_name(info: dict[str, Any]) -> str:
    return str(info.get("name") or info.get("fullName") or "")


def _degree_line(edu: dict[str, Any]) -> str:
    field = edu.get("fieldOfStudy") or edu.get("field")
    return f"{edu.get('degree') or ''}{f' in {field}' if field else ''}"


def _company_line(exp: dict[str, Any]) -> str:
    return f"{exp.get('company') or ''}{', ' + exp['location'] if exp.get('location') else ''}"


def resume_to_text(content: dict[str, Any]) -> str:
    lines: list[str] = []
    info = _personal_info(content)
    if info:
        name = _display_name(info)
        if name:
            lines.append(name)
        contact = _contact_line(info)
        if contact:
            lines.extend([contact, ""])

    def header(title: str) -> None:
        lines.extend([title, _SECTION_RULES[title]])

    if content.get("summary"):
        header("PROFESSIONAL SUMMARY")
        lines.extend([str(content["summary"]), ""])

    experience = _entries(content, "experience")
    if experience:
        header("EXPERIENCE")
        for exp in experience:
            lines.append(str(exp.get("position") or ""))
            lines.append(_company_line(exp))
            dates = _date_range(exp, _month_year)
            if dates:
                lines.append(dates)
            for responsibility in _items(exp.get("responsibilities")):
                lines.append(f"• {responsibility}")
            lines.append("")

    education = _entries(content, "education")
    if education:
        header("EDUCATION")
        for edu in education:
            lines.append(_degree_line(edu))
            lines.append(str(edu.get("institution") or ""))
            dates = _date_range(edu, _year)
            if dates:
                lines.append(dates)
            if edu.get("gpa"):
                lines.append(f"GPA: {edu['gpa']}")
            lines.append("")

    skills = _skills(content)
    if skills:
        header("SKILLS")
        lines.extend([", ".join(skills), ""])

    projects = _entries(content, "projects")
    if projects:
        header("PROJECTS")
        for project in projects:
            lines.append(str(project.get("name") or ""))
            if project.get("description"):
                lines.append(str(project["description"]))
            technologies = _technologies(project)
            if technologies:
                lines.append(f"Technologies: {technologies}")
            url = project.get("url") or project.get("link")
            if url:
                lines.append(f"URL: {url}")
            lines.append("")

    return "\n".join(lines)


def _palette(index: int) -> dict[str, str]:
    palettes = get_catalog_value("export.palettes", []) or []
    if not palettes:
        return {"primary": "#111827", "accent": "#2563eb"}
    if index < 0 or index >= len(palettes):
        index = int(get_catalog_value("export.default_palette", 0) or 0)
    return palettes[index]


def _rgb(hex_color: str) -> RGBColor:
    return RGBColor.from_string(hex_color.lstrip("#").upper())


def resume_to_docx(content: dict[str, Any], *, palette_index: int = 0) -> bytes:
    content = _xml_safe(content)
    palette = _palette(palette_index)
    document = Document()
    style = document.styles["Normal"]
    style.font.name = "Calibri"
    style.font.size = Pt(10.5)

    info = _personal_info(content)
    name = _display_name(info)
    if name:
        heading = document.add_heading(name, level=0)
        for run in heading.runs:
            run.font.color.rgb = _rgb(palette["primary"])
    contact = _contact_line(info)
    if contact:
        document.add_paragraph(contact)

    def section(title: str) -> None:
        heading = document.add_heading(title, level=1)
        for run in heading.runs:
            run.font.color.rgb = _rgb(palette["accent"])

    if content.get("summary"):
        section("Professional Summary")
        document.add_paragraph(str(content["summary"]))

    experience = _entries(content, "experience")
    if experience:
        section("Experience")
        for exp in experience:
            title = document.add_paragraph()
            title.add_run(str(exp.get("position") or "")).bold = True
            company = _company_line(exp)
            if company:
                title.add_run(f"  {company}")
            dates = _date_range(exp, _month_year)
            if dates:
                document.add_paragraph(dates).runs[0].italic = True
            for responsibility in _items(exp.get("responsibilities")):
                document.add_paragraph(str(responsibility), style="List Bullet")

    education = _entries(content, "education")
    if education:
        section("Education")
        for edu in education:
            degree = document.add_paragraph()
            degree.add_run(_degree_line(edu)).bold = True
            details = [str(edu.get("institution") or ""), _date_range(edu, _year)]
            if edu.get("gpa"):
                details.append(f"GPA: {edu['gpa']}")
            document.add_paragraph(" | ".join(part for part in details if part))

    skills = _skills(content)
    if skills:
        section("Skills")
        document.add_paragraph(", ".join(skills))

    projects = _entries(content, "projects")
    if projects:
        section("Projects")
        for project in projects:
            document.add_paragraph().add_run(str(project.get("name") or "")).bold = True
            if project.get("description"):
                document.add_paragraph(str(project["description"]))
            technologies = _technologies(project)
            if technologies:
                document.add_paragraph(f"Technologies: {technologies}")
            url = project.get("url") or project.get("link")
            if url:
                document.add_paragraph(f"URL: {url}")

    buffer = BytesIO()
    document.save(buffer)
    return buffer.getvalue()


class _PdfWriter:
    margin = 18 * mm
    leading = 13.5

    def __init__(self, palette: dict[str, str]):
        self.buffer = BytesIO()
        self.pdf = canvas.Canvas(self.buffer, pagesize=A4)
        self.width, self.height = A4
        self.y = self.height - self.margin
        self.primary = colors.HexColor(palette["primary"])
        self.accent = colors.HexColor(palette["accent"])

    def _ensure_space(self, needed: float) -> None:
        if self.y - needed <= self.margin:
            self.pdf.showPage()
            self.y = self.height - self.margin

    def _wrap(self, text: str, font: str, size: float, width: float) -> list[str]:
        words = text.split()
        if not words:
            return [""]
        lines: list[str] = []
        current = words[0]
        for word in words[1:]:
            candidate = f"{current} {word}"
            if self.pdf.stringWidth(candidate, font, size) <= width:
                current = candidate
            else:
                lines.append(current)
                current = word
        lines.append(current)
        return lines

    def text(self, value: str, *, font: str = "Helvetica", size: float = 10, indent: float = 0, color=None) -> None:
        width = self.width - 2 * self.margin - indent
        self.pdf.setFillColor(color or colors.black)
        for line in self._wrap(value, font, size, width):
            self._ensure_space(self.leading)
            self.pdf.setFont(font, size)
            self.pdf.drawString(self.margin + indent, self.y, line)
            self.y -= self.leading

    def bullet(self, value: str) -> None:
        self._ensure_space(self.leading)
        self.pdf.setFillColor(self.accent)
        self.pdf.setFont("Helvetica", 10)
        self.pdf.drawString(self.margin + 4, self.y, "•")
        self.text(value, indent=14)

    def section(self, title: str) -> None:
        self._ensure_space(self.leading * 3)
        self.y -= 6
        self.pdf.setFillColor(self.accent)
        self.pdf.setFont("Helvetica-Bold", 12)
        self.pdf.drawString(self.margin, self.y, title.upper())
        self.y -= 4
        self.pdf.setStrokeColor(self.accent)
        self.pdf.setLineWidth(0.8)
        self.pdf.line(self.margin, self.y, self.width - self.margin, self.y)
        self.y -= self.leading

    def gap(self, amount: float = 4) -> None:
        self.y -= amount

    def finish(self) -> bytes:
        self.pdf.save()
        return self.buffer.getvalue()


def resume_to_pdf(content: dict[str, Any], *, title: str = "Resume", palette_index: int = 0) -> bytes:
    writer = _PdfWriter(_palette(palette_index))
    writer.pdf.setTitle(title)

    info = _personal_info(content)
    name = _display_name(info)
    if name:
        writer.text(name, font="Helvetica-Bold", size=20, color=writer.primary)
        writer.gap(6)
    contact = _contact_line(info)
    if contact:
        writer.text(contact, size=9, color=colors.HexColor("#4b5563"))

    if content.get("summary"):
        writer.section("Professional Summary")
        writer.text(str(content["summary"]))

    experience = _entries(content, "experience")
    if experience:
        writer.section("Experience")
        for exp in experience:
            writer.text(str(exp.get("position") or ""), font="Helvetica-Bold", size=11, color=writer.primary)
            company = _company_line(exp)
            if company:
                writer.text(company, font="Helvetica-Oblique")
            dates = _date_range(exp, _month_year)
            if dates:
                writer.text(dates, size=9, color=colors.HexColor("#6b7280"))
            for responsibility in _items(exp.get("responsibilities")):
                writer.bullet(str(responsibility))
            writer.gap()

    education = _entries(content, "education")
    if education:
        writer.section("Education")
        for edu in education:
            writer.text(_degree_line(edu), font="Helvetica-Bold", size=11, color=writer.primary)
            details = [str(edu.get("institution") or ""), _date_range(edu, _year)]
            if edu.get("gpa"):
                details.append(f"GPA: {edu['gpa']}")
            writer.text(" | ".join(part for part in details if part))
            writer.gap()

    skills = _skills(content)
    if skills:
        writer.section("Skills")
        writer.text(", ".join(skills))

    projects = _entries(content, "projects")
    if projects:
        writer.section("Projects")
        for project in projects:
            writer.text(str(project.get("name") or ""), font="Helvetica-Bold", size=11, color=writer.primary)
            if project.get("description"):
                writer.text(str(project["description"]))
            technologies = _technologies(project)
            if technologies:
                writer.text(f"Technologies: {technologies}", size=9)
            url = project.get("url") or project.get("link")
            if url:
                writer.text(f"URL: {url}", size=9, color=writer.accent)
            writer.gap()

    return writer.finish()


def export_resume(resume: dict[str, Any], fmt: str) -> ExportedFile:
    if fmt not in EXPORT_FORMATS:
        raise ValueError("Unsupported format")
    extension, media_type = EXPORT_FORMATS[fmt]
    content = resume.get("content") or {}
    filename = f"{safe_filename(resume.get('title'))}.{extension}"
    palette_index = int(resume.get("color_palette_index") or 0)

    if fmt == "text":
        data = resume_to_text(content).encode("utf-8")
    elif fmt == "docx":
        data = resume_to_docx(content, palette_index=palette_index)
    else:
        data = resume_to_pdf(content, title=resume.get("title") or "Resume", palette_index=palette_index)
    return ExportedFile(filename=filename, media_type=media_type, content=data)


def html_to_docx(html: str, title: str | None = None) -> ExportedFile:
    if not html or not html.strip():
        raise ValueError("HTML content is required")

    soup = BeautifulSoup(html, "html.parser")
    document = Document()
    if title:
        document.core_properties.title = _xml_safe(title)

    for element in soup.find_all(["h1", "h2", "h3", "h4", "p", "li"]):
        text = _xml_safe(element.get_text(" ", strip=True))
        if not text:
            continue
        if element.name in {"h1", "h2", "h3", "h4"}:
            document.add_heading(text, level=min(int(element.name[1]), 3))
        elif element.name == "li":
            document.add_paragraph(text, style="List Bullet")
        else:
            document.add_paragraph(text)

    if not document.paragraphs:
        plain = _xml_safe(soup.get_text("\n", strip=True))
        for line in plain.splitlines():
            document.add_paragraph(line)

    buffer = BytesIO()
    document.save(buffer)
    return ExportedFile(
        filename=f"{safe_filename(title)}.docx",
        media_type=EXPORT_FORMATS["docx"][1],
        content=buffer.getvalue(),
    )
