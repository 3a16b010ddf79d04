"""Minimal terminal pages shown to signers and payers at the end of a redirect."""

from html import escape

from fastapi import status
from fastapi.responses import HTMLResponse

_PAGE = """<!DOCTYPE html>
<html lang="en">
<head><meta charset="utf-8"><title>{title}</title></head>
<body>
<main class="{css_class}">
<h1>{title}</h1>
<p>{message}</p>
{footer}
</main>
</body>
</html>
"""


def render_page(
    title: str,
    message: str,
    status_code: int = status.HTTP_200_OK,
    envelope_id: str | None = None,
    css_class: str = "notice",
) -> HTMLResponse:
    footer = f"<p><small>Reference: {escape(envelope_id)}</small></p>" if envelope_id else ""
    body = _PAGE.format(title=escape(title), message=escape(message), footer=footer, css_class=css_class)
    return HTMLResponse(content=body, status_code=status_code)


def render_error(message: str, status_code: int, envelope_id: str | None = None) -> HTMLResponse:
    return render_page("Something went wrong", message, status_code, envelope_id, css_class="error")
