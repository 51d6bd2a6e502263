"""HTML to text helpers."""

import re
from typing import Optional

from bs4 import BeautifulSoup


def html_to_text(html: Optional[str], preserve_paragraphs: bool = False) -> str:
    """Strip tags from an HTML fragment.

    Args:
        html: HTML fragment, may be plain text
        preserve_paragraphs: Separate block elements with blank lines

    Returns:
        Plain text with normalized whitespace
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, "html.parser")

    for element in soup(["script", "style", "noscript"]):
        element.decompose()

    if preserve_paragraphs:
        for br in soup.find_all("br"):
            br.replace_with("\n")
        text = soup.get_text(separator="\n\n")
        text = re.sub(r"[ \t]+", " ", text)
        lines = [line.strip() for line in text.split("\n")]
        text = re.sub(r"\n{3,}", "\n\n", "\n".join(lines))
    else:
        text = re.sub(r"\s+", " ", soup.get_text(separator=" "))

    return text.strip()
