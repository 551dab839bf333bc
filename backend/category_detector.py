"""
Keyword-based classification of free-form input into an optimization category
"""
import re
from enum import Enum
from typing import Dict, List


class Category(Enum):
    """Categories the optimizer has system prompts for"""
    CREATIVE = "creative"
    CODING = "coding"
    BUSINESS = "business"
    ACADEMIC = "academic"


DEFAULT_CATEGORY = Category.CREATIVE

CATEGORY_INDICATORS: Dict[Category, List[str]] = {
    Category.CREATIVE: [
        'image', 'picture', 'illustration', 'painting', 'drawing', 'art', 'artistic',
        'style', 'mood', 'color', 'scene', 'story', 'poem', 'poetry', 'fiction',
        'character', 'logo', 'design', 'photo', 'cinematic', 'aesthetic', 'imagine'
    ],
    Category.CODING: [
        'code', 'function', 'script', 'program', 'api', 'bug', 'debug', 'python',
        'javascript', 'typescript', 'java', 'react', 'sql', 'database', 'endpoint',
        'class', 'algorithm', 'refactor', 'unit test', 'compile', 'framework', 'app'
    ],
    Category.BUSINESS: [
        'business', 'marketing', 'sales', 'strategy', 'customer', 'revenue', 'startup',
        'market', 'campaign', 'brand', 'pitch', 'investor', 'kpi', 'roi', 'competitor',
        'product launch', 'stakeholder', 'proposal', 'email to', 'budget'
    ],
    Category.ACADEMIC: [
        'essay', 'research', 'thesis', 'paper', 'study', 'literature review', 'citation',
        'cite', 'hypothesis', 'analysis', 'theory', 'professor', 'course', 'lecture',
        'dissertation', 'journal', 'methodology', 'homework', 'assignment', 'exam'
    ],
}


def score_categories(text: str) -> Dict[Category, int]:
    """Count indicator hits per category"""
    text_lower = text.lower()
    scores = {category: 0 for category in Category}

    for category, indicators in CATEGORY_INDICATORS.items():
        for indicator in indicators:
            if re.search(r'\b' + re.escape(indicator) + r'\b', text_lower):
                scores[category] += 1

    return scores


def detect_category(text: str) -> Category:
    """
    Pick the best matching category for the input.

    Highest indicator count wins; ties go to the category declared first.
    Input with no indicators at all falls back to the creative category.
    """
    if not text:
        return DEFAULT_CATEGORY

    scores = score_categories(text)
    best = max(Category, key=lambda category: scores[category])

    if scores[best] == 0:
        return DEFAULT_CATEGORY
    return best
