"""Report rendering and per-case answer files."""

from .answers import format_predictions, write_answer_files
from .html_report import render_html_report

__all__ = ["format_predictions", "write_answer_files", "render_html_report"]
