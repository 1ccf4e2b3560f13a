def truncate_text(text: str, max_chars: int, suffix: str = "") -> str:
    """超过 max_chars 时截断并追加 suffix；max_chars <= 0 表示不限制。"""
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    return text[:max_chars] + suffix
