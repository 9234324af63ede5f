from __future__ import annotations

import logging
from pathlib import Path
from shutil import copyfile

from markdown import markdown

from account_tracking.config import REPO_ROOT

log = logging.getLogger(__name__)

# WeasyPrint needs native libraries (pango/cairo); treat any import failure as "no PDF".
try:
    from weasyprint import HTML  # type: ignore[import-untyped]
    WEASYPRINT_AVAILABLE = True
    WEASYPRINT_IMPORT_ERROR = ""
except Exception as e:  # WeasyPrint can raise non-ImportError exceptions
    HTML = None  # type: ignore[assignment]
    WEASYPRINT_AVAILABLE = False
    WEASYPRINT_IMPORT_ERROR = str(e)


CSS_SOURCE = REPO_ROOT / "docs" / "report.css"


HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>{title}</title>
  <link rel="stylesheet" href="report.css">
</head>
<body>
  <div class="report-container">
    {content}
  </div>
</body>
</html>
"""


def render_html(md_text: str, page_title: str) -> str:
    # 'extra' + 'tables' so Markdown tables become proper <table> elements
    content_html = markdown(md_text, extensions=["extra", "tables"])
    return HTML_TEMPLATE.format(title=page_title, content=content_html)


def build_html_from_markdown(
    md_path: Path,
    html_path: Path,
    page_title: str,
) -> Path:
    """
    Convert the given Markdown report into a styled HTML file next to a copy of report.css.
    """
    if not md_path.exists():
        raise FileNotFoundError(f"Markdown report not found: {md_path}")

    full_html = render_html(md_path.read_text(encoding="utf-8"), page_title)
    html_path.parent.mkdir(parents=True, exist_ok=True)

    if CSS_SOURCE.exists():
        try:
            copyfile(CSS_SOURCE, html_path.parent / CSS_SOURCE.name)
        except OSError as exc:
            log.warning("Could not copy %s: %s", CSS_SOURCE, exc)

    html_path.write_text(full_html, encoding="utf-8")
    return html_path


def html_to_pdf(
    html_path: Path,
    pdf_path: Path,
) -> Path | None:
    """
    Render the HTML report to PDF using WeasyPrint, if available.
    Returns the PDF path on success, or None if WeasyPrint is not available.
    """
    if not html_path.exists():
        raise FileNotFoundError(f"HTML report not found: {html_path}")

    if not WEASYPRINT_AVAILABLE:
        log.warning("WeasyPrint not available; skipping PDF generation (%s)", WEASYPRINT_IMPORT_ERROR)
        return None

    HTML(filename=str(html_path)).write_pdf(str(pdf_path))
    return pdf_path


def build_html_and_pdf(
    md_path: Path,
    html_path: Path,
    pdf_path: Path | None = None,
    page_title: str = "Account Audit Report",
) -> tuple[Path, Path | None]:
    """
    Build HTML from Markdown, then render PDF if requested and possible.

    Returns (html_path, pdf_path_or_None).
    """
    html_built = build_html_from_markdown(
        md_path=md_path,
        html_path=html_path,
        page_title=page_title,
    )

    pdf_built: Path | None = None
    if pdf_path is not None:
        pdf_built = html_to_pdf(html_path=html_built, pdf_path=pdf_path)

    return html_built, pdf_built
