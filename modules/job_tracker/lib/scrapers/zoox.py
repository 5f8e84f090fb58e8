# modules/job_tracker/lib/scrapers/zoox.py
from __future__ import annotations

from ..models import Employer
from .base import SourceExtractor
from .registry import register


@register
class ZooxExtractor(SourceExtractor):
    """zoox.com/careers (Amazon robotaxis)."""

    slug = "zoox"
    employer = Employer(
        name="Zoox",
        slug="zoox",
        career_page_url="https://zoox.com/careers",
        industry="Robotaxis",
        headquarters="Foster City, CA",
    )
    link_base = "https://zoox.com"

    # "ai" is a bare substring match, so it also catches e.g. "Maintenance".
    department_rules = (
        (("simulation", "testing"), "Simulation"),
        (("research", "scientist"), "Research"),
        (("perception", "ai"), "AI/ML"),
        (("vehicle", "hardware"), "Vehicle Systems"),
        (("software", "engineer"), "Engineering"),
        (("product",), "Product"),
    )

    salary_bands = (
        (("research", "scientist"), (200_000, 350_000)),
        (("simulation",), (145_000, 210_000)),
    )
    default_salary_band = (150_000, 250_000)

    requirement_rules = (
        (("simulation",), ("Game engine experience", "3D graphics programming", "Physics simulation")),
        (("research",), ("PhD in AI/ML", "Research publications", "Autonomous vehicle experience")),
    )
    default_requirements = ("BS/MS in Computer Science", "5+ years software development", "C++/Python proficiency")
    benefits = ("Amazon benefits", "Stock units", "Flexible work", "Health and wellness")
    description_suffix = "Join Amazon's Zoox team developing fully autonomous robotaxis."

    fallback_set = (
        {
            "title": "Simulation Engineer",
            "department": "Engineering",
            "location": "Foster City, CA",
            "employment_type": "full_time",
            "seniority": "mid",
            "description": (
                "Build simulation systems for autonomous vehicle testing. Develop realistic virtual "
                "environments and scenarios."
            ),
            "salary_min": 145_000,
            "salary_max": 210_000,
            "requirements": ("Game engine experience", "3D graphics programming", "Physics simulation"),
            "benefits": ("Amazon benefits", "Stock units", "Flexible work"),
        },
        {
            "title": "AI Research Scientist",
            "department": "Research",
            "location": "Foster City, CA",
            "employment_type": "full_time",
            "seniority": "senior",
            "description": (
                "Research and develop AI algorithms for autonomous driving. Work on machine learning, "
                "computer vision, and robotics."
            ),
            "salary_min": 200_000,
            "salary_max": 350_000,
            "requirements": ("PhD in AI/ML", "Research publications", "Autonomous vehicle experience"),
            "benefits": ("Amazon benefits", "Equity", "Research budget"),
        },
    )
