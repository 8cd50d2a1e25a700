"""Best-effort video title lookup."""

import json
import logging
from typing import Optional
from urllib.parse import quote

from ..http.protocols import HttpClient

logger = logging.getLogger(__name__)

OEMBED_ENDPOINT = "https://www.youtube.com/oembed"


def oembed_url(video_url: str) -> str:
    return f"{OEMBED_ENDPOINT}?url={quote(video_url, safe='')}&format=json"


async def fetch_video_title(http_client: HttpClient, video_url: str, timeout: float = 10.0) -> Optional[str]:
    """
    Look up a video's title through the platform's oEmbed endpoint.

    Never raises: any failure (network, status, payload) yields None and
    the caller substitutes a placeholder title.
    """
    try:
        response = await http_client.get(oembed_url(video_url), timeout=timeout)
        if not response.ok:
            logger.debug(f"oEmbed lookup for {video_url} returned HTTP {response.status_code}")
            return None
        data = json.loads(http_client.decode_content(response))
    except Exception as e:
        logger.debug(f"oEmbed lookup for {video_url} failed: {e}")
        return None

    title = data.get("title") if isinstance(data, dict) else None
    if isinstance(title, str) and title.strip():
        return title.strip()
    return None
