"""HTML shells for the dashboard tree; the client bundle renders the actual screens."""
import html

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

router = APIRouter()


def _html_shell(title: str, section: str) -> HTMLResponse:
    t = html.escape(title)
    s = html.escape(section)
    body = f"""<!DOCTYPE html>
<html lang="id">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{t}</title>
</head>
<body>
  <div id="app" data-section="{s}"></div>
</body>
</html>"""
    resp = HTMLResponse(body)
    resp.headers["Content-Type"] = "text/html; charset=utf-8"
    return resp


@router.get("/login", response_class=HTMLResponse)
def login_page():
    return _html_shell("Tanggapin AI | Masuk", "login")


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard_root():
    return _html_shell("Tanggapin AI | Dashboard", "dashboard")


@router.get("/dashboard/{section:path}", response_class=HTMLResponse)
def dashboard_section(section: str):
    return _html_shell("Tanggapin AI | Dashboard", section.strip("/"))
