# modules/job_tracker/lib/scrapers/anthropic.py
from __future__ import annotations

from ..models import Employer
from .base import STARTUP_MULTIPLIERS, SourceExtractor
from .registry import register


@register
class AnthropicExtractor(SourceExtractor):
    """
    anthropic.com/careers. Cards are structured job tiles carrying explicit
    department and office elements when present.
    """

    slug = "anthropic"
    employer = Employer(
        name="Anthropic",
        slug="anthropic",
        career_page_url="https://www.anthropic.com/careers",
        industry="AI Safety",
        headquarters="San Francisco, CA",
    )
    link_base = "https://www.anthropic.com"

    card_selector = ".job-listing, .career-opportunity, .position, [data-job], .job-card"
    title_selector = "h3, h4, .job-title, .position-title, [data-title]"
    department_selector = ".department, .team, .category, [data-department]"
    location_selector = ".location, .office, [data-location]"

    department_rules = (
        (("research", "scientist"), "Research"),
        (("engineer", "software", "infrastructure"), "Engineering"),
        (("product",), "Product"),
        (("design",), "Design"),
        (("data",), "Data Science"),
        (("safety", "alignment"), "AI Safety"),
    )
    default_department = "Research"

    salary_bands = (
        (("research", "scientist"), (180_000, 300_000)),
        (("engineer",), (150_000, 250_000)),
        (("product",), (140_000, 220_000)),
    )
    default_salary_band = (120_000, 200_000)
    salary_multipliers = STARTUP_MULTIPLIERS

    requirement_rules = (
        (
            ("research", "scientist"),
            (
                "PhD in AI/ML, Computer Science, or related field",
                "3+ years of research experience",
                "Publications in top-tier AI/ML venues",
                "Experience with large language models",
            ),
        ),
        (
            ("engineer",),
            (
                "BS/MS in Computer Science or related field",
                "5+ years of software engineering experience",
                "Experience with distributed systems",
                "Python/C++ proficiency",
            ),
        ),
        (
            ("product",),
            (
                "5+ years of product management experience",
                "Experience with AI/ML products",
                "Strong analytical and communication skills",
            ),
        ),
    )
    trailing_requirements = ("Passion for AI safety and alignment", "Strong problem-solving skills")
    benefits = (
        "Health insurance",
        "Equity package",
        "Flexible work arrangements",
        "Learning budget",
        "Research opportunities",
    )
    description_suffix = "Join our team working on AI safety and alignment research."

    fallback_set = (
        {
            "title": "AI Safety Researcher",
            "department": "Research",
            "location": "San Francisco, CA",
            "employment_type": "full_time",
            "seniority": "senior",
            "description": (
                "Join our team to research and develop safe AI systems. Work on alignment, "
                "interpretability, and robustness of large language models."
            ),
            "salary_min": 180_000,
            "salary_max": 280_000,
            "requirements": (
                "PhD in AI/ML or related field",
                "3+ years research experience",
                "Publications in top-tier venues",
                "Experience with large language models",
            ),
            "benefits": ("Health insurance", "Equity package", "Flexible work arrangements", "Research budget"),
        },
        {
            "title": "Infrastructure Engineer",
            "department": "Engineering",
            "location": "San Francisco, CA",
            "employment_type": "full_time",
            "seniority": "mid",
            "description": (
                "Build and maintain the infrastructure that powers our AI systems. Work with "
                "distributed systems, cloud platforms, and ML infrastructure."
            ),
            "salary_min": 150_000,
            "salary_max": 220_000,
            "requirements": (
                "5+ years infrastructure experience",
                "Experience with Kubernetes",
                "Cloud platform expertise",
                "Python/Go proficiency",
            ),
            "benefits": ("Health insurance", "Stock options", "Learning budget", "Flexible PTO"),
        },
    )
