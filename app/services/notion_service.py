"""Notion Service.

OAuth code exchange and page creation against the Notion public API, plus
the small HTML pages shown at the end of the OAuth popup flow.
"""

import html
import json
import logging
from datetime import datetime, timezone
from urllib.parse import urlencode

import httpx

from app.config import settings

logger = logging.getLogger(__name__)

TEXT_CHUNK_SIZE = 2000
MAX_BLOCKS_PER_REQUEST = 100


class NotionError(Exception):
    """Raised when the Notion API rejects a request."""


def build_authorize_url(state_token: str) -> str:
    query = urlencode({
        "client_id": settings.NOTION_CLIENT_ID,
        "response_type": "code",
        "owner": "user",
        "redirect_uri": settings.NOTION_REDIRECT_URI,
        "state": state_token,
    })
    return f"{settings.NOTION_API_BASE_URL}/oauth/authorize?{query}"


async def exchange_code(code: str) -> dict:
    """Exchange an OAuth authorization code for an access token.

    Returns:
        The token payload (``access_token``, ``workspace_id``,
        ``workspace_name``, ...).
    """
    if not settings.NOTION_CLIENT_ID or not settings.NOTION_CLIENT_SECRET:
        raise NotionError("Notion integration is not configured")

    async with httpx.AsyncClient(timeout=30.0) as client:
        response = await client.post(
            f"{settings.NOTION_API_BASE_URL}/oauth/token",
            auth=(settings.NOTION_CLIENT_ID, settings.NOTION_CLIENT_SECRET),
            json={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": settings.NOTION_REDIRECT_URI,
            },
        )

    if response.status_code >= 400:
        logger.error("Notion token exchange failed: %s", response.text)
        raise NotionError("Failed to exchange code for token")

    data = response.json()
    if not data.get("access_token"):
        raise NotionError("Notion did not return an access token")
    return data


def normalize_page_id(page_id: str) -> str:
    """Return a Notion id in dashed 8-4-4-4-12 form when it has 32 hex digits."""
    raw = page_id.strip().replace("-", "")
    if len(raw) != 32:
        return page_id.strip()
    return f"{raw[:8]}-{raw[8:12]}-{raw[12:16]}-{raw[16:20]}-{raw[20:]}"


def build_title(children: list[str], when: datetime | None = None) -> str:
    when = when or datetime.now(timezone.utc)
    title = f"{when.strftime('%b')} {when.day}, {when.year}"
    if children:
        title += f" - {', '.join(children)}"
    return title


def _rich_text(content: str, link: str | None = None) -> list[dict]:
    text: dict = {"content": content}
    if link:
        text["link"] = {"url": link}
    return [{"type": "text", "text": text}]


def _heading(content: str) -> dict:
    return {
        "object": "block",
        "type": "heading_3",
        "heading_3": {"rich_text": _rich_text(content)},
    }


def _paragraph(content: str, link: str | None = None) -> dict:
    return {
        "object": "block",
        "type": "paragraph",
        "paragraph": {"rich_text": _rich_text(content, link)},
    }


def _bullet(content: str) -> dict:
    return {
        "object": "block",
        "type": "bulleted_list_item",
        "bulleted_list_item": {"rich_text": _rich_text(content)},
    }


def build_blocks(
    transcript: str,
    audio_url: str | None = None,
    tags: list[str] | None = None,
    sentiment: str | None = None,
    duration: int | None = None,
    location: str | None = None,
) -> list[dict]:
    """Build the page body.

    Notion caps a rich text object at 2000 characters, so the transcript is
    split into consecutive paragraphs of at most that length.
    """
    blocks = [_heading("Transcript")]
    for start in range(0, len(transcript), TEXT_CHUNK_SIZE):
        blocks.append(_paragraph(transcript[start:start + TEXT_CHUNK_SIZE]))

    details = []
    if tags:
        details.append("Tags: " + ", ".join(f"#{tag.lstrip('#')}" for tag in tags))
    if sentiment:
        details.append(f"Sentiment: {sentiment}")
    if duration is not None:
        minutes, seconds = divmod(int(duration), 60)
        details.append(f"Duration: {minutes}:{seconds:02d}")
    if location:
        details.append(f"Location: {location}")
    if details:
        blocks.append(_heading("Details"))
        blocks.extend(_bullet(item) for item in details)

    if audio_url:
        blocks.append(_heading("Recording"))
        blocks.append(_paragraph("Listen to the audio", link=audio_url))

    return blocks


async def create_page(
    access_token: str,
    parent_page_id: str | None,
    title: str,
    blocks: list[dict],
) -> dict:
    """Create a page under ``parent_page_id`` or at the workspace root.

    Notion takes at most 100 child blocks per request; any further blocks
    are appended to the new page in batches of that size.

    Returns:
        The created page object (``id``, ``url``, ...).
    """
    if parent_page_id:
        parent = {"page_id": normalize_page_id(parent_page_id)}
    else:
        parent = {"type": "workspace", "workspace": True}

    headers = {
        "Authorization": f"Bearer {access_token}",
        "Notion-Version": settings.NOTION_VERSION,
    }

    async with httpx.AsyncClient(timeout=30.0) as client:
        response = await client.post(
            f"{settings.NOTION_API_BASE_URL}/pages",
            headers=headers,
            json={
                "parent": parent,
                "properties": {"title": {"title": [{"text": {"content": title}}]}},
                "children": blocks[:MAX_BLOCKS_PER_REQUEST],
            },
        )
        if response.status_code >= 400:
            logger.error("Notion page creation failed (%s): %s", response.status_code, response.text)
            raise NotionError(f"Failed to create Notion page: {response.text}")
        page = response.json()

        for start in range(MAX_BLOCKS_PER_REQUEST, len(blocks), MAX_BLOCKS_PER_REQUEST):
            response = await client.patch(
                f"{settings.NOTION_API_BASE_URL}/blocks/{page['id']}/children",
                headers=headers,
                json={"children": blocks[start:start + MAX_BLOCKS_PER_REQUEST]},
            )
            if response.status_code >= 400:
                logger.error(
                    "Appending blocks to Notion page %s failed (%s): %s",
                    page["id"], response.status_code, response.text,
                )
                raise NotionError(f"Failed to create Notion page: {response.text}")

    return page


# ---------------------------------------------------------------------------
# OAuth popup pages
# ---------------------------------------------------------------------------

_PAGE = """<!DOCTYPE html>
<html>
  <head>
    <title>{title}</title>
    <style>
      body {{
        font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
        display: flex;
        align-items: center;
        justify-content: center;
        height: 100vh;
        margin: 0;
        background: {background};
        color: white;
      }}
      .container {{ text-align: center; }}
      h1 {{ margin: 0 0 16px; }}
      p {{ opacity: 0.9; }}
    </style>
  </head>
  <body>
    <div class="container">
      <h1>{heading}</h1>
      {body}
    </div>
    {script}
  </body>
</html>
"""


def success_page() -> str:
    """Page that notifies the opener window, or falls back to the settings page."""
    settings_url = json.dumps(f"{settings.FRONTEND_URL.rstrip('/')}/settings")
    return _PAGE.format(
        title="Notion Connected",
        background="linear-gradient(135deg, #667eea 0%, #764ba2 100%)",
        heading="&#10003; Connected to Notion",
        body="<p>You can close this window</p>",
        script=(
            "<script>\n"
            "      if (window.opener) {\n"
            "        window.opener.postMessage({ type: 'NOTION_AUTH_SUCCESS' }, '*');\n"
            "        setTimeout(() => window.close(), 2000);\n"
            "      } else {\n"
            f"        setTimeout(() => {{ window.location.href = {settings_url}; }}, 2000);\n"
            "      }\n"
            "    </script>"
        ),
    )


def error_page(message: str) -> str:
    return _PAGE.format(
        title="Connection Failed",
        background="linear-gradient(135deg, #f093fb 0%, #f5576c 100%)",
        heading="&#10007; Connection Failed",
        body=f"<p>{html.escape(message)}</p>\n      <p>You can close this window</p>",
        script="",
    )
