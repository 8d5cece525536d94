"""Shared fixtures: offline settings and article HTML builders."""

from __future__ import annotations

import pytest

from config.settings import PipelineSettings, Settings, StorageSettings


SENTENCES = [
    "The committee reviewed the proposal in detail and agreed to publish its findings next month.",
    "Officials said the new budget would prioritise schools, hospitals and regional transport links.",
    "Several economists warned that inflation could slow the planned investment programme considerably.",
    "Opposition leaders asked for an independent audit before any contracts are signed this year.",
    "Local businesses reported rising demand after the first phase of the plan was announced.",
    "Researchers at the national institute published a separate study supporting the main conclusions.",
    "The minister is expected to present a revised timeline to parliament early next week.",
    "Residents in the affected districts have organised public meetings to discuss the changes openly.",
]


def article_body(words: int = 500) -> str:
    """Plain-text body of at least ``words`` words built from distinct sentences."""
    out = []
    count = 0
    i = 0
    while count < words:
        sentence = SENTENCES[i % len(SENTENCES)]
        out.append(f"{sentence[:-1]} (part {i + 1}).")
        count += len(out[-1].split())
        i += 1
    return " ".join(out)


def article_html(title: str = "Test Headline", words: int = 500, extra_head: str = "", lang: str = "en") -> str:
    sentences = article_body(words).split(". ")
    paragraphs = []
    for start in range(0, len(sentences), 4):
        paragraphs.append("<p>" + ". ".join(sentences[start:start + 4]).rstrip(".") + ".</p>")
    lang_attr = f' lang="{lang}"' if lang else ""
    return (
        f"<html{lang_attr}><head><title>{title} | Daily Example</title>"
        f'<meta property="og:title" content="{title}">'
        '<meta property="og:site_name" content="Daily Example">'
        '<meta name="description" content="A report on the committee decision.">'
        '<meta name="author" content="Jane Reporter">'
        '<meta property="og:image" content="https://cdn.example.com/lead.jpg">'
        f"{extra_head}</head><body>"
        "<nav>Home | World | Business</nav>"
        f'<article class="article-body"><h1>{title}</h1>'
        '<div class="ad-banner">BUY NOW</div>'
        f"{''.join(paragraphs)}"
        '<div class="share-tools">Share this story</div>'
        "</article>"
        "<footer>Copyright Daily Example</footer>"
        "</body></html>"
    )


@pytest.fixture
def offline_settings(tmp_path) -> Settings:
    return Settings(
        pipeline=PipelineSettings(mock_mode=True),
        storage=StorageSettings(
            vector_db_provider="memory",
            style_path=str(tmp_path / "style" / "patterns.json"),
        ),
    )
