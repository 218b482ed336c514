"""Topic-exchange style routing key matching.

Routing keys are dot-separated words. In a binding pattern ``*`` matches
exactly one word and ``#`` matches zero or more words.
"""


def topic_matches(pattern: str, routing_key: str) -> bool:
    return _match(pattern.split("."), routing_key.split("."))


def _match(pattern: list[str], words: list[str]) -> bool:
    if not pattern:
        return not words

    head, rest = pattern[0], pattern[1:]
    if head == "#":
        # Try absorbing 0..n words
        return any(_match(rest, words[i:]) for i in range(len(words) + 1))

    if not words:
        return False

    if head == "*" or head == words[0]:
        return _match(rest, words[1:])

    return False
