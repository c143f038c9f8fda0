"""Reply parsers for the ``parser=`` request option.

A parser takes the complete reply text and returns a value, e.g.

    >>> from unillm import complete, parsers
    >>> colors = await complete("list the sky's colors as a json array",
    ...                         stream=True, parser=parsers.json)
"""

import json as jsonlib
import re

from .errors import ResponseParseError

_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


def json(text: str):
    """Parse JSON out of a model reply.

    Models often wrap JSON in a markdown code fence or add a sentence around
    it, so the fenced block (if any) is used, then the span from the first
    ``[`` or ``{`` to the last matching closer.

    Raises:
        ResponseParseError: If no JSON value can be decoded.
    """
    fenced = _FENCE.search(text)
    candidate = fenced.group(1) if fenced else text
    candidate = candidate.strip()

    starts = [i for i in (candidate.find("["), candidate.find("{")) if i != -1]
    if starts:
        start = min(starts)
        closer = "]" if candidate[start] == "[" else "}"
        end = candidate.rfind(closer)
        if end > start:
            candidate = candidate[start:end + 1]

    try:
        return jsonlib.loads(candidate)
    except jsonlib.JSONDecodeError as e:
        raise ResponseParseError(f"Reply is not valid JSON: {e}", text=text) from e


__all__ = ["json"]
