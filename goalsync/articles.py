"""Read-mostly article references cached on the device."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import Field

from .goals import _WireModel

ArticleCategory = Literal["exercise", "cognitive", "social", "sleep", "diet", "general"]


class Article(_WireModel):
    id: str = Field(..., min_length=1)
    title: str
    category: ArticleCategory
    description: str = ""
    url: str
    image_url: Optional[str] = None
    source: Optional[str] = None


_DEFAULT_ARTICLES = [
    {
        "id": "exercise_nia",
        "title": "Exercise and Physical Activity",
        "category": "exercise",
        "description": (
            "Learn about the four main types of exercise and how they can help maintain and "
            "improve your health as you age."
        ),
        "url": "https://www.nia.nih.gov/health/exercise-physical-activity",
        "source": "National Institute on Aging",
    },
    {
        "id": "sleep_cdc",
        "title": "Sleep and Brain Health",
        "category": "sleep",
        "description": (
            "Discover how quality sleep impacts brain health and learn practical tips for better "
            "sleep habits."
        ),
        "url": "https://www.cdc.gov/sleep/about_sleep/index.html",
        "source": "CDC",
    },
    {
        "id": "cognitive_ncbi",
        "title": "Cognitive Training in Older Adults",
        "category": "cognitive",
        "description": (
            "Research on cognitive training methods and their effectiveness in maintaining brain health."
        ),
        "url": "https://www.ncbi.nlm.nih.gov/pmc/articles/PMC3386797/",
        "source": "NIH",
    },
    {
        "id": "nutrition_harvard",
        "title": "The MIND Diet and Brain Health",
        "category": "diet",
        "description": (
            "Explore the MIND diet and its potential benefits for brain health and cognitive function."
        ),
        "url": "https://www.health.harvard.edu/blog/mind-diet-may-protect-against-alzheimers-201502148735",
        "source": "Harvard Health",
    },
    {
        "id": "social_nia",
        "title": "Social Connections and Cognitive Health",
        "category": "social",
        "description": (
            "Understanding the vital link between social connections and cognitive health in older adults."
        ),
        "url": "https://www.nia.nih.gov/health/cognitive-health/social-activities",
        "source": "National Institute on Aging",
    },
]


def default_articles() -> List[Article]:
    """Fresh copies of the bundled article collection."""
    return [Article.model_validate(entry) for entry in _DEFAULT_ARTICLES]


__all__ = ["Article", "ArticleCategory", "default_articles"]
