"""Last-resort post extraction from raw HTML with an LLM."""

from typing import List

from bs4 import BeautifulSoup
from rich.console import Console

from ..inference import ExtractedPost, ExtractionError, LLMProvider, parse_model_list
from ..inference.prompts import HTML_EXTRACT_PROMPT, HTML_EXTRACT_SYSTEM
from .http import absolutize, is_http_url
from .models import RawPost

console = Console()


def condense_html(html: str) -> str:
    """Drop scripts, styles and other non-content markup before truncation."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript", "svg", "iframe", "head"]):
        tag.decompose()
    return str(soup)


class LLMPostExtractor:
    """Ask the LLM for the posts listed on an HTML page.

    Returns an empty list on any failure; links are absolutized against the
    page URL and invalid items are dropped.
    """

    def __init__(self, llm: LLMProvider, max_chars: int = 15000) -> None:
        self.llm = llm
        self.max_chars = max_chars

    def extract(self, html: str, base_url: str) -> List[RawPost]:
        payload = condense_html(html)[: self.max_chars]
        prompt = HTML_EXTRACT_PROMPT.format(url=base_url, html=payload)

        try:
            response = self.llm.complete(prompt, system=HTML_EXTRACT_SYSTEM, max_tokens=2000)
            items = parse_model_list(response, ExtractedPost, key="posts")
        except ExtractionError as e:
            console.print(f"[yellow]LLM extraction returned no usable JSON for {base_url}: {e}[/yellow]")
            return []
        except Exception as e:
            console.print(f"[red]LLM extraction failed for {base_url}: {e}[/red]")
            return []

        posts: List[RawPost] = []
        seen = set()
        for item in items:
            link = absolutize(item.link, base_url)
            if not is_http_url(link) or link in seen:
                continue
            seen.add(link)
            posts.append(
                RawPost(
                    title=item.title.strip(),
                    link=link,
                    published=item.published or "",
                    author=item.author or None,
                    image=absolutize(item.image, base_url),
                )
            )
        return posts
