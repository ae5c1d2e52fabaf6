"""Slide deck model and fixed HTML templates.

The slide model only decides the words; layout and colors come from the
templates here so every generated deck renders consistently in the client.
"""

import html
from typing import Any, Literal

from pydantic import BaseModel, Field

SlideType = Literal["title", "content", "bullet"]
SlideStyle = Literal["professional", "creative", "minimal", "academic"]

DEFAULT_STYLE = "professional"


class Slide(BaseModel):
    """One slide as produced by the slide model."""

    title: str
    content: str
    type: SlideType
    bullet_points: list[str] | None = Field(default=None, serialization_alias="bulletPoints")


class SlideDeck(BaseModel):
    """Structured output requested from the slide model."""

    slides: list[Slide]


COLOR_SCHEMES: dict[str, dict[str, str]] = {
    "professional": {
        "primary": "#1a365d",
        "secondary": "#2b6cb0",
        "accent": "#ed8936",
        "background": "linear-gradient(135deg, #667eea 0%, #764ba2 100%)",
        "text": "#ffffff",
        "cardBg": "#ffffff",
        "cardText": "#2d3748",
    },
    "creative": {
        "primary": "#e53e3e",
        "secondary": "#dd6b20",
        "accent": "#38a169",
        "background": "linear-gradient(135deg, #ff6b6b 0%, #feca57 100%)",
        "text": "#ffffff",
        "cardBg": "#ffffff",
        "cardText": "#2d3748",
    },
    "minimal": {
        "primary": "#000000",
        "secondary": "#2d3748",
        "accent": "#4299e1",
        "background": "linear-gradient(135deg, #f8f9fa 0%, #e9ecef 100%)",
        "text": "#2d3748",
        "cardBg": "#ffffff",
        "cardText": "#2d3748",
    },
    "academic": {
        "primary": "#2c5282",
        "secondary": "#2b6cb0",
        "accent": "#d69e2e",
        "background": "linear-gradient(135deg, #4a5568 0%, #2d3748 100%)",
        "text": "#ffffff",
        "cardBg": "#ffffff",
        "cardText": "#2d3748",
    },
}

# Scoped under .slide-container so several slides can sit on one page
_BASE_CSS = """
    .slide-container {{
      width: 100%;
      height: 100%;
      isolation: isolate;
    }}

    .slide-container * {{
      margin: 0;
      padding: 0;
      box-sizing: border-box;
    }}

    .slide-container .slide {{
      width: 100%;
      height: 100%;
      min-height: 500px;
      background: {background};
      color: {text};
      font-family: 'SF Pro Display', -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
      display: flex;
      flex-direction: column;
      justify-content: center;
      align-items: center;
      padding: 40px;
      position: relative;
      overflow: hidden;
    }}

    .slide-container .slide::before {{
      content: '';
      position: absolute;
      top: 0;
      left: 0;
      right: 0;
      bottom: 0;
      background: rgba(0, 0, 0, 0.1);
      z-index: 1;
    }}

    .slide-container .slide-content {{
      position: relative;
      z-index: 2;
      text-align: center;
      max-width: 800px;
      width: 100%;
    }}

    .slide-container h1 {{
      font-size: 3rem;
      font-weight: 700;
      margin-bottom: 1.5rem;
      line-height: 1.2;
      letter-spacing: -0.025em;
    }}

    .slide-container h2 {{
      font-size: 2.5rem;
      font-weight: 600;
      margin-bottom: 1.5rem;
      line-height: 1.2;
      letter-spacing: -0.025em;
    }}

    .slide-container .subtitle {{
      font-size: 1.25rem;
      font-weight: 400;
      opacity: 0.9;
      margin-bottom: 2rem;
    }}

    .slide-container .content-card {{
      background: {cardBg};
      color: {cardText};
      padding: 2rem;
      border-radius: 16px;
      box-shadow: 0 20px 40px rgba(0,0,0,0.1), 0 10px 20px rgba(0,0,0,0.05);
      margin-top: 2rem;
      text-align: left;
    }}

    .slide-container .content-card p {{
      font-size: 0.95rem;
      line-height: 1.6;
      margin-bottom: 1rem;
    }}

    .slide-container .bullets {{
      list-style: none;
      padding: 0;
      margin: 0;
    }}

    .slide-container .bullets li {{
      font-size: 0.95rem;
      line-height: 1.6;
      margin-bottom: 1rem;
      padding-left: 2rem;
      position: relative;
    }}

    .slide-container .bullets li::before {{
      content: '\\2022';
      color: {accent};
      font-size: 1.5rem;
      position: absolute;
      left: 0;
      top: 0;
    }}

    .slide-container .slide-number {{
      position: absolute;
      bottom: 20px;
      right: 20px;
      font-size: 0.9rem;
      opacity: 0.7;
      z-index: 3;
    }}
"""


def color_scheme(style: str) -> dict[str, str]:
    """Colors for a style; unknown styles fall back to professional."""
    return COLOR_SCHEMES.get(style, COLOR_SCHEMES[DEFAULT_STYLE])


def _slide_body(slide: Slide) -> str:
    title = html.escape(slide.title)

    if slide.type == "title":
        subtitle = f'<p class="subtitle">{html.escape(slide.content)}</p>' if slide.content else ""
        return f"<h1>{title}</h1>{subtitle}"

    if slide.type == "bullet":
        bullets = ""
        if slide.bullet_points:
            items = "".join(f"<li>{html.escape(point)}</li>" for point in slide.bullet_points)
            bullets = f'<ul class="bullets">{items}</ul>'
        return f'<h2>{title}</h2><div class="content-card">{bullets}</div>'

    return f'<h2>{title}</h2><div class="content-card"><p>{html.escape(slide.content)}</p></div>'


def render_slide_html(slide: Slide, style: str = DEFAULT_STYLE) -> str:
    """Render one slide to self-contained HTML (style block plus markup)."""
    css = _BASE_CSS.format(**color_scheme(style))
    body = _slide_body(slide)
    markup = (
        '<div class="slide-container"><div class="slide">'
        f'<div class="slide-content">{body}</div>'
        "</div></div>"
    )
    return f"<style>{css}</style>{markup}"


def render_deck(deck: SlideDeck, style: str = DEFAULT_STYLE) -> list[dict[str, Any]]:
    """Serialize a deck for the client, each slide carrying its HTML."""
    return [
        {
            **slide.model_dump(by_alias=True, exclude_none=True),
            "html": render_slide_html(slide, style),
        }
        for slide in deck.slides
    ]


def slides_to_markdown(slides: list[dict[str, Any]]) -> str:
    """Convert client slides to the markdown accepted by Google Slides tools.

    Each slide becomes `# title` followed by its content (or its bullet
    points, one per line); slides are separated by horizontal rules.
    """
    sections = []
    for slide in slides:
        slide = slide if isinstance(slide, dict) else {}
        body = slide.get("content") or "\n".join(slide.get("bulletPoints") or [])
        sections.append(f"# {slide.get('title', '')}\n\n{body}")
    return "\n\n---\n\n".join(sections)
