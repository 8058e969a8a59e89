"""Wikipedia article scraper.

Fetches the subject's article once per call and parses it with
BeautifulSoup. Two views are exposed:

- :meth:`WikipediaSource.fetch_article_text`: the first three non-empty
  lead paragraphs, input for known-for extraction.
- :meth:`WikipediaSource.fetch_structured_sections`: filmography-like
  sections (tables and bullet lists under headings mentioning
  filmography / voice / television / film), the lead text and the infobox
  "Known for" / "Notable work" field.

A missing article (404) or any network error yields empty output.
"""

from __future__ import annotations

import logging
import re
from urllib.parse import quote

import httpx
from bs4 import BeautifulSoup, Tag

from rolescout.models import ArticleSections, SectionEntry
from rolescout.sources.base import HttpSource

logger = logging.getLogger(__name__)

WIKIPEDIA_BASE_URL = "https://en.wikipedia.org/wiki"

LEAD_PARAGRAPHS = 3
SECTION_KEYWORDS = ("filmography", "voice", "television", "film", "roles")
MAX_SIBLINGS = 5
INFOBOX_LABELS = ("known for", "notable work", "notable works", "years active roles")

_CITATION = re.compile(r"\[(?:\d+|[a-z]|citation needed|note \d+)\]")
_YEAR = re.compile(r"^\s*((?:19|20)\d{2})(?:\s*[–-]\s*(?:(?:19|20)?\d{2}|present))?\s*$")
_AS_CHARACTER = re.compile(r"\bas\s+(.+?)\s*$", re.IGNORECASE)


def article_url(subject: str, base_url: str = WIKIPEDIA_BASE_URL) -> str:
    """Build the article URL for *subject* (spaces become underscores)."""
    slug = "_".join(subject.split())
    return f"{base_url.rstrip('/')}/{quote(slug)}"


def _clean(text: str) -> str:
    text = _CITATION.sub("", text)
    return re.sub(r"\s+", " ", text).strip()


def _heading_anchor(heading: Tag) -> Tag:
    """Return the element whose siblings hold the section body.

    Newer article markup wraps headings in ``<div class="mw-heading">``.
    """
    parent = heading.parent
    if isinstance(parent, Tag) and "mw-heading" in (parent.get("class") or []):
        return parent
    return heading


def _is_heading(tag: Tag) -> bool:
    if tag.name in ("h2", "h3"):
        return True
    return tag.name == "div" and "mw-heading" in (tag.get("class") or [])


def _parse_year(text: str) -> int | None:
    m = _YEAR.match(text)
    return int(m.group(1)) if m else None


class WikipediaSource(HttpSource):
    """Fetches and parses encyclopedia articles for a subject."""

    def __init__(
        self,
        base_url: str = WIKIPEDIA_BASE_URL,
        timeout: float = 10.0,
        user_agent: str = "rolescout/0.3",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(timeout=timeout, headers={"User-Agent": user_agent}, client=client)
        self.base_url = base_url

    async def _fetch_soup(self, subject: str) -> BeautifulSoup | None:
        url = article_url(subject, self.base_url)
        client = await self._get_client()
        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            logger.warning("Wikipedia fetch failed for %r: %s", subject, e)
            return None
        if response.status_code == 404:
            logger.info("No Wikipedia article for %r", subject)
            return None
        if response.status_code >= 400:
            logger.warning(
                "Wikipedia returned HTTP %d for %r", response.status_code, subject
            )
            return None
        return BeautifulSoup(response.text, "html.parser")

    async def fetch_article_text(self, subject: str) -> str:
        soup = await self._fetch_soup(subject)
        if soup is None:
            return ""
        return lead_text(soup)

    async def fetch_structured_sections(self, subject: str) -> ArticleSections:
        soup = await self._fetch_soup(subject)
        if soup is None:
            return ArticleSections()
        return parse_article(soup)


def lead_text(soup: BeautifulSoup, paragraphs: int = LEAD_PARAGRAPHS) -> str:
    """Join the first *paragraphs* non-empty body paragraphs."""
    body = soup.select_one("div.mw-parser-output") or soup
    texts: list[str] = []
    for p in body.find_all("p"):
        if "mw-empty-elt" in (p.get("class") or []):
            continue
        if p.find_parent("table") is not None:
            continue
        text = _clean(p.get_text(" "))
        if text:
            texts.append(text)
        if len(texts) >= paragraphs:
            break
    return "\n".join(texts)


def parse_article(soup: BeautifulSoup) -> ArticleSections:
    sections: list[tuple[str, list[SectionEntry]]] = []
    for heading in soup.find_all(["h2", "h3"]):
        heading_text = _clean(heading.get_text(" "))
        lowered = heading_text.lower()
        if not any(keyword in lowered for keyword in SECTION_KEYWORDS):
            continue
        entries = _section_entries(_heading_anchor(heading))
        if entries:
            sections.append((heading_text, entries))

    return ArticleSections(
        lead_text=lead_text(soup),
        sections=sections,
        infobox_known_for=_infobox_known_for(soup),
    )


def _section_entries(anchor: Tag) -> list[SectionEntry]:
    entries: list[SectionEntry] = []
    seen = 0
    for sibling in anchor.find_next_siblings():
        if _is_heading(sibling):
            break
        seen += 1
        if seen > MAX_SIBLINGS:
            break
        tables = [sibling] if sibling.name == "table" else sibling.find_all("table")
        for table in tables:
            entries.extend(_table_entries(table))
        lists = [sibling] if sibling.name == "ul" else sibling.find_all("ul")
        for ul in lists:
            entries.extend(_list_entries(ul))
    return entries


def _table_entries(table: Tag) -> list[SectionEntry]:
    rows = table.find_all("tr")
    if not rows:
        return []

    headers = [_clean(th.get_text(" ")).lower() for th in rows[0].find_all("th")]
    title_idx = next((i for i, h in enumerate(headers) if "title" in h), None)
    role_idx = next(
        (i for i, h in enumerate(headers) if "role" in h or "character" in h), None
    )

    entries: list[SectionEntry] = []
    current_year: int | None = None
    for row in rows[1:] if headers else rows:
        cells = [_clean(c.get_text(" ")) for c in row.find_all(["td", "th"])]
        if not cells:
            continue
        year = _parse_year(cells[0])
        if year is not None:
            current_year = year

        title: str | None = None
        character: str | None = None
        if title_idx is not None and headers:
            # rowspan on the leading year column shortens later rows
            offset = len(headers) - len(cells)
            idx = title_idx - offset if offset > 0 else title_idx
            if 0 <= idx < len(cells):
                title = cells[idx]
            if role_idx is not None:
                r_idx = role_idx - offset if offset > 0 else role_idx
                if 0 <= r_idx < len(cells) and r_idx != idx:
                    character = cells[r_idx] or None
        else:
            for i, cell in enumerate(cells[:3]):
                if _parse_year(cell) is None and len(cell) > 2:
                    title = cell
                    if i + 1 < len(cells):
                        character = cells[i + 1] or None
                    break

        if title and len(title) > 2:
            entries.append(SectionEntry(title=title, character=character, year=current_year))
    return entries


def _list_entries(ul: Tag) -> list[SectionEntry]:
    entries: list[SectionEntry] = []
    for li in ul.find_all("li", recursive=False):
        text = _clean(li.get_text(" "))
        if not text:
            continue
        title = text.split("(", 1)[0].strip(" -–,")
        character: str | None = None
        year: int | None = None
        if "(" in text:
            rest = text.split("(", 1)[1]
            year_match = re.search(r"(?:19|20)\d{2}", rest)
            if year_match:
                year = int(year_match.group(0))
            as_match = _AS_CHARACTER.search(rest.replace(")", " "))
            if as_match:
                character = as_match.group(1).strip(" ,.")
        if " as " in title:
            title, _, character = title.partition(" as ")
            title = title.strip()
            character = character.strip() or None
        if len(title) > 2:
            entries.append(SectionEntry(title=title, character=character, year=year))
    return entries


def _infobox_known_for(soup: BeautifulSoup) -> list[str]:
    infobox = soup.select_one("table.infobox")
    if infobox is None:
        return []
    items: list[str] = []
    for row in infobox.find_all("tr"):
        label = row.find("th")
        value = row.find("td")
        if label is None or value is None:
            continue
        if _clean(label.get_text(" ")).lower() not in INFOBOX_LABELS:
            continue
        list_items = value.find_all("li")
        if list_items:
            items.extend(_clean(li.get_text(" ")) for li in list_items)
        else:
            for br in value.find_all("br"):
                br.replace_with("\n")
            raw = value.get_text("\n")
            items.extend(_clean(part) for part in re.split(r"[\n,]", raw))
    return [item for item in items if item]
