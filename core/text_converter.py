# core/text_converter.py
"""
HTML to plain text conversion for outgoing messages

Every message is sent with a plain text alternative derived from its HTML
body. The derived text never contains markup characters: angle brackets that
survive parsing (decoded entities, stray brackets) are re-escaped.
"""

import re
import logging
import textwrap

from bs4 import BeautifulSoup, NavigableString

logger = logging.getLogger(__name__)

DEFAULT_WORDWRAP = 130

BLOCK_TAGS = [
    'p', 'div', 'section', 'article', 'header', 'footer', 'blockquote',
    'pre', 'table', 'tr', 'ul', 'ol', 'hr',
]
HEADER_TAGS = ['h1', 'h2', 'h3', 'h4', 'h5', 'h6']
DROPPED_TAGS = ['script', 'style', 'head', 'title', 'noscript']


def html_to_text(html_content: str, wordwrap: int = DEFAULT_WORDWRAP) -> str:
    """
    Convert an HTML message body to plain text

    Args:
        html_content: HTML body as submitted by the user
        wordwrap: Maximum line width, 0 or None disables wrapping

    Returns:
        Plain text with paragraphs separated by blank lines
    """
    if not html_content:
        return ""

    soup = BeautifulSoup(html_content, 'html.parser')

    for tag in soup.find_all(DROPPED_TAGS):
        tag.decompose()

    _collapse_whitespace(soup)

    for br in soup.find_all('br'):
        br.replace_with('\n')

    for header in soup.find_all(HEADER_TAGS):
        header.insert_before('\n')
        header.insert_after('\n\n')

    for block in soup.find_all(BLOCK_TAGS):
        block.insert_before('\n')
        block.insert_after('\n\n')

    for li in soup.find_all('li'):
        li.insert(0, '* ')
        li.insert_after('\n')

    for cell in soup.find_all(['td', 'th']):
        cell.insert_after('\t')

    # Links keep their target after the label
    for link in soup.find_all('a', href=True):
        label = link.get_text().strip()
        href = link['href'].strip()
        if href.lower().startswith('mailto:'):
            href = href[len('mailto:'):]
        if not label:
            link.replace_with(href)
        elif href and href != label:
            link.replace_with(f"{label} [{href}]")

    text = soup.get_text()
    text = _escape_markup(text)
    return _normalize(text, wordwrap)


def _collapse_whitespace(soup: BeautifulSoup) -> None:
    # Source whitespace renders as a single space outside <pre>; only the
    # newlines inserted for <br> and block tags survive as line breaks.
    for node in soup.find_all(string=True):
        if type(node) is not NavigableString or node.find_parent('pre'):
            continue
        collapsed = re.sub(r'\s+', ' ', str(node))
        if collapsed != node:
            node.replace_with(collapsed)


def _escape_markup(text: str) -> str:
    return text.replace('<', '&lt;').replace('>', '&gt;')


def _normalize(text: str, wordwrap: int) -> str:
    lines = []
    for line in text.split('\n'):
        line = re.sub(r'[ \t\xa0]+', ' ', line).strip()
        if wordwrap and len(line) > wordwrap:
            line = textwrap.fill(
                line,
                width=wordwrap,
                break_long_words=False,
                break_on_hyphens=False,
            )
        lines.append(line)

    text = '\n'.join(lines)
    text = re.sub(r'\n{3,}', '\n\n', text)
    return text.strip()
