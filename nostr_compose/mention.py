import re
from typing import Optional

import grapheme

# A full-length "@npub..." token is a pasted key, not a search in progress
_KEY_TOKEN_LENGTH = 64

_WHITESPACE = re.compile(r"\s")


def detect_mention(text: str) -> Optional[str]:
    """Return the user-search query typed at the end of the post, if any.

    The last whitespace-separated token triggers a search when it starts with
    ``@`` and has at least one character after it. Trailing whitespace ends the
    token, so ``"hi @ji "`` yields no query. Lengths are counted in grapheme
    clusters, so an accented letter or a ZWJ emoji counts as one character.

    Args:
        text: Current post text.

    Returns:
        The token without its leading ``@``, or None.
    """
    last_token = _WHITESPACE.split(text)[-1]
    length = grapheme.length(last_token)

    if length < 2:
        return None

    if not last_token.startswith("@"):
        return None

    if length == _KEY_TOKEN_LENGTH:
        return None

    return last_token[1:]
