# Bundled plugin: search the Internet Archive audio collection.

import httpx

platform = "Internet Archive"
version = "1.0.0"
author = "Plugin Host"
description = "Search public-domain recordings on archive.org"
supported_search_type = ["music"]
primary_key = ["id"]

SEARCH_URL = "https://archive.org/advancedsearch.php"
DOWNLOAD_URL = "https://archive.org/download"


def _to_music_item(doc):
    return {
        "platform": platform,
        "id": doc["identifier"],
        "title": doc.get("title") or doc["identifier"],
        "artist": doc.get("creator") or "",
    }


async def search(query, page=1, search_type="music"):
    if search_type != "music":
        return {"is_end": True, "data": []}

    async with httpx.AsyncClient(timeout=15.0) as client:
        response = await client.get(
            SEARCH_URL,
            params={
                "q": f"({query}) AND mediatype:(audio)",
                "fl[]": ["identifier", "title", "creator"],
                "rows": 20,
                "page": page,
                "output": "json",
            },
        )
    response.raise_for_status()
    body = response.json()["response"]
    docs = body.get("docs", [])
    logger.debug(f"archive.org returned {len(docs)} results for {query!r}")
    return {
        "is_end": page * 20 >= body.get("numFound", 0),
        "data": [_to_music_item(doc) for doc in docs],
    }


def get_music_info(music_item):
    return {"artwork": f"https://archive.org/services/img/{music_item['id']}"}


def get_media_source(music_item, quality="standard"):
    return {
        "url": f"{DOWNLOAD_URL}/{music_item['id']}",
        "headers": {"User-Agent": f"plugin-host/{host.app_version}"},
    }
