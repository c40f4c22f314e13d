import logging
from functools import lru_cache
from typing import List, Optional, Union

from bs4 import BeautifulSoup, NavigableString, Tag
from pygments.lexer import Lexer
from pygments.lexers import get_lexer_by_name
from pygments.token import Comment, Keyword, Name, Number, Operator, String, Token, _TokenType

from coverage_enhancer.model import CoverageDocument

logger = logging.getLogger(__name__)

SNIPPET_SELECTOR = ".prettyprint"
HIGHLIGHTED_ATTR = "data-highlighted"

# Pygments token types mapped to the highlight.js classes the matcha.css
# syntax-highlighting stylesheet targets. Lookups walk up the token hierarchy,
# so the most specific entry wins.
HLJS_CLASSES = {
    Keyword: "hljs-keyword",
    Keyword.Type: "hljs-type",
    Keyword.Constant: "hljs-literal",
    String: "hljs-string",
    String.Regex: "hljs-regexp",
    String.Interpol: "hljs-subst",
    Comment: "hljs-comment",
    Number: "hljs-number",
    Operator: "hljs-operator",
    Name.Function: "hljs-title",
    Name.Class: "hljs-title",
    Name.Builtin: "hljs-built_in",
    Name.Decorator: "hljs-meta",
    Name.Attribute: "hljs-attr",
    Name.Property: "hljs-property",
    Name.Variable: "hljs-variable",
    Name.Tag: "hljs-tag",
}


@lru_cache(maxsize=None)
def _lexer(language: str) -> Lexer:
    # Keep leading/trailing newlines so line numbers stay aligned with the source
    return get_lexer_by_name(language, stripnl=False, ensurenl=False)


def hljs_class(token_type: _TokenType) -> Optional[str]:
    """Returns the highlight.js class for a token type, None for plain text."""
    while token_type is not Token:
        css_class = HLJS_CLASSES.get(token_type)
        if css_class is not None:
            return css_class
        token_type = token_type.parent
    return None


def highlight_nodes(soup: BeautifulSoup, source: str, language: str = "typescript") -> List[Union[Tag, NavigableString]]:
    """
    Tokenizes `source` into spans created on `soup`. The text of the returned
    nodes, concatenated, is exactly `source`.
    """
    nodes: List[Union[Tag, NavigableString]] = []
    for token_type, value in _lexer(language).get_tokens(source):
        if not value:
            continue
        css_class = hljs_class(token_type)
        if css_class is None or value.isspace():
            nodes.append(NavigableString(value))
            continue
        span = soup.new_tag("span", attrs={"class": css_class})
        span.string = value
        nodes.append(span)
    return nodes


def highlight_source(source: str, language: str = "typescript") -> str:
    """Returns highlighted HTML markup (spans only, no wrapper) for a piece of source code."""
    soup = BeautifulSoup("", "html.parser")
    fragment = soup.new_tag("code")
    for node in highlight_nodes(soup, source, language):
        fragment.append(node)
    return fragment.decode_contents()


def is_highlighted(element: Tag) -> bool:
    return element.get(HIGHLIGHTED_ATTR) == "true"


def highlight_document(document: CoverageDocument, language: str = "typescript") -> int:
    """
    Highlights every source snippet not yet marked as highlighted.
    Returns the number of blocks rewritten.
    """
    count = 0
    for element in document.soup.select(SNIPPET_SELECTOR):
        if is_highlighted(element):
            logger.debug("Snippet in %s already highlighted", document.path)
            continue
        nodes = highlight_nodes(document.soup, element.get_text(), language)
        element.clear()
        for node in nodes:
            element.append(node)
        element[HIGHLIGHTED_ATTR] = "true"
        count += 1

    if count:
        logger.info("Highlighted %d snippet(s) in %s", count, document.path)
    return count
