"""Main content extraction from parsed HTML documents."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Union

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

# High-confidence containers, tried in order before any scoring
PRIORITY_SELECTORS = [
    "main",
    "article",
    '[role="main"]',
    "#main",
    "#content",
    ".content",
]

# Candidates considered by the scored fallback
STRUCTURAL_SELECTOR = 'article, main, [role="main"], section, div'

# Containers re-examined for boilerplate once the root is fixed
CONTENT_NODE_SELECTOR = "section, div, article, aside, nav, header, footer"

HIDDEN_SELECTOR = '[hidden], [aria-hidden="true"]'

BOILERPLATE_HINT_PATTERN = re.compile(
    r"(nav|menu|footer|header|sidebar|breadcrumb|cookie|consent|promo|advert"
    r"|social|share|related|subscribe|newsletter)",
    re.IGNORECASE,
)
HIDDEN_STYLE_PATTERN = re.compile(r"(display\s*:\s*none|visibility\s*:\s*hidden)", re.IGNORECASE)
WHITESPACE_PATTERN = re.compile(r"\s+")

MIN_CANDIDATE_TEXT_LENGTH = 80

PARAGRAPH_BONUS = 120
HEADING_BONUS = 70
LIST_BONUS = 45
TABLE_BONUS = 25
PRE_BONUS = 25
LINK_DENSITY_PENALTY = 320
BOILERPLATE_PENALTY = 350

PRUNE_LINK_DENSITY = 0.5
PRUNE_MIN_LINKS = 4
PRUNE_MAX_TEXT_LENGTH = 220

ContentRoot = Union[Tag, BeautifulSoup]


def normalized_text(element: Tag) -> str:
    """Visible text with whitespace runs collapsed."""
    return WHITESPACE_PATTERN.sub(" ", element.get_text()).strip()


def text_length(element: Tag) -> int:
    return len(normalized_text(element))


def link_density(element: Tag) -> float:
    """
    Fraction of an element's text that sits inside anchors.

    An element without text counts as all links (1.0) so empty
    containers never win.
    """
    total = text_length(element)
    if total == 0:
        return 1.0

    link_text = sum(text_length(link) for link in element.find_all("a"))
    return link_text / total


def has_boilerplate_hint(element: Tag) -> bool:
    """Check tag name, class, id, role and aria-label for boilerplate words."""
    if BOILERPLATE_HINT_PATTERN.search(element.name or ""):
        return True

    for attribute in ("class", "id", "role", "aria-label"):
        value = element.get(attribute)
        if not value:
            continue
        if isinstance(value, list):
            value = " ".join(value)
        if BOILERPLATE_HINT_PATTERN.search(value):
            return True

    return False


@dataclass
class ContentCandidate:
    """
    A candidate main-content element with its structural metrics.

    Computed on demand; nothing is cached across documents.
    """

    element: Tag
    text_length: int
    paragraphs: int
    headings: int
    lists: int
    tables: int
    preformatted: int
    link_density: float
    boilerplate: bool

    @classmethod
    def from_element(cls, element: Tag) -> ContentCandidate:
        return cls(
            element=element,
            text_length=text_length(element),
            paragraphs=len(element.select("p")),
            headings=len(element.select("h1, h2, h3")),
            lists=len(element.select("ul, ol")),
            tables=len(element.select("table")),
            preformatted=len(element.select("pre")),
            link_density=link_density(element),
            boilerplate=has_boilerplate_hint(element),
        )

    @property
    def score(self) -> float:
        if self.text_length < MIN_CANDIDATE_TEXT_LENGTH:
            return float("-inf")

        score = float(self.text_length)
        score += self.paragraphs * PARAGRAPH_BONUS
        score += self.headings * HEADING_BONUS
        score += self.lists * LIST_BONUS
        score += self.tables * TABLE_BONUS
        score += self.preformatted * PRE_BONUS
        score -= _round_half_up(self.link_density * LINK_DENSITY_PENALTY)

        if self.boilerplate:
            score -= BOILERPLATE_PENALTY

        return score


def _round_half_up(value: float) -> int:
    # round() rounds halves to even; halves always go up here
    return int(value + 0.5)


def score_candidate(element: Tag) -> float:
    return ContentCandidate.from_element(element).score


class MainContentExtractor:
    """
    Finds the main content subtree of an HTML document.

    A priority lookup handles well-marked-up pages; otherwise structural
    candidates are scored on text length, paragraph/heading/list density,
    link density and boilerplate hints. The chosen root is then hardened
    by removing hidden nodes and sparse or link-heavy boilerplate.

    Example:
        soup = BeautifulSoup(html, "html.parser")
        extractor = MainContentExtractor()
        root = extractor.extract(soup)
        content_html = root.decode_contents()
    """

    def __init__(self, min_text_length: int = 140):
        """
        Initialize the content extractor.

        Args:
            min_text_length: Minimum collapsed text length for a root
        """
        self._min_text_length = min_text_length

    @property
    def min_text_length(self) -> int:
        return self._min_text_length

    def pick_content_root(self, soup: BeautifulSoup) -> ContentRoot:
        """
        Choose the element most likely to hold the main content.

        Args:
            soup: Parsed document

        Returns:
            The chosen element, the body, or the document itself
        """
        for selector in PRIORITY_SELECTORS:
            element = soup.select_one(selector)
            if element is None:
                continue
            if text_length(element) >= self._min_text_length:
                logger.debug(f"Content root matched priority selector {selector!r}")
                return element

        best_element = None
        best_score = float("-inf")

        for candidate in soup.select(STRUCTURAL_SELECTOR):
            score = score_candidate(candidate)
            if score <= best_score:
                continue
            best_score = score
            best_element = candidate

        if best_element is not None and text_length(best_element) >= self._min_text_length:
            logger.debug(f"Content root scored {best_score} (<{best_element.name}>)")
            return best_element

        body = soup.body
        if body is not None:
            return body
        return soup

    def harden(self, soup: BeautifulSoup, root: ContentRoot) -> None:
        """
        Remove hidden nodes and boilerplate from the chosen root.

        Args:
            soup: Parsed document (modified in place)
            root: Root returned by ``pick_content_root``
        """
        self._remove_hidden(soup)
        if root is not soup.body:
            self._remove_hidden(root)
        self._prune_boilerplate(root)

    def extract(self, soup: BeautifulSoup) -> ContentRoot:
        """Pick the content root and harden it."""
        root = self.pick_content_root(soup)
        self.harden(soup, root)
        return root

    def _remove_hidden(self, root: ContentRoot) -> None:
        for node in root.select(HIDDEN_SELECTOR):
            node.extract()

        for node in root.select("[style]"):
            style = node.get("style")
            if style and HIDDEN_STYLE_PATTERN.search(style):
                node.extract()

    def _prune_boilerplate(self, root: ContentRoot) -> None:
        removed = 0
        for node in root.select(CONTENT_NODE_SELECTOR):
            if not has_boilerplate_hint(node):
                continue

            density = link_density(node)
            length = text_length(node)
            links = len(node.find_all("a"))

            if density >= PRUNE_LINK_DENSITY or links >= PRUNE_MIN_LINKS or length < PRUNE_MAX_TEXT_LENGTH:
                node.extract()
                removed += 1

        if removed:
            logger.debug(f"Pruned {removed} boilerplate containers from content root")
