PAGE_SIZE = 2000


def split_into_pages(text, max_chars=PAGE_SIZE):
    """Slice text into consecutive chunks of at most max_chars characters.

    Joining the result gives back the input unchanged. An empty text still
    yields one (empty) page so there is always a page 0 to show.
    """
    if max_chars <= 0:
        raise ValueError(f"max_chars must be positive, got {max_chars}")
    if not text:
        return [""]
    return [text[i : i + max_chars] for i in range(0, len(text), max_chars)]
