"""URLs of the BFI box office CMS."""

from urllib.parse import quote

# Characters JavaScript's encodeURIComponent leaves alone, besides alphanumerics.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_component(value: str) -> str:
    return quote(str(value), safe=_URI_COMPONENT_SAFE)


def index_url(base_url: str, permalink: str) -> str:
    """URL of the article with the given permalink, e.g. the films index."""
    return f"{base_url}?BOparam::WScontent::loadArticle::permalink={encode_component(permalink)}"


def next_page_url(base_url: str, token: str, page: int, article_id: str) -> str:
    """URL of result page ``page`` for an article's screening search."""
    return (
        f"{base_url}?sToken={encode_component(token)}"
        f"&BOset::WScontent::SearchResultsInfo::current_page={page}"
        f"&doWork::WScontent::getPage="
        f"&BOparam::WScontent::getPage::article_id={encode_component(article_id)}"
    )
