def telegram_html_escape(string: str) -> str:
    """See https://core.telegram.org/bots/api#html-style"""
    return string.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def mask(string: str) -> str:
    """hunter2 -> *******"""
    return "*" * len(string)
