# modules/job_tracker/lib/scrapers/alltrails.py
from __future__ import annotations

from ..models import Employer, Seniority
from .base import STANDARD_MULTIPLIERS, SourceExtractor
from .registry import register


@register
class AllTrailsExtractor(SourceExtractor):
    """alltrails.com/careers (consumer outdoor app)."""

    slug = "alltrails"
    employer = Employer(
        name="AllTrails",
        slug="alltrails",
        career_page_url="https://www.alltrails.com/careers",
        industry="Outdoor Recreation",
        headquarters="San Francisco, CA",
    )
    link_base = "https://www.alltrails.com"

    department_rules = (
        (("ios", "android", "mobile"), "Mobile"),
        (("backend", "api"), "Backend"),
        (("frontend", "web"), "Frontend"),
        (("product",), "Product"),
        (("design", "ux"), "Design"),
        (("data", "analytics"), "Data"),
        (("engineer", "software"), "Engineering"),
    )

    salary_bands = (
        (("ios", "mobile"), (120_000, 180_000)),
        (("product",), (140_000, 200_000)),
    )
    default_salary_band = (100_000, 160_000)
    salary_multipliers = {**STANDARD_MULTIPLIERS, Seniority.PRINCIPAL: (1.9, 2.2)}

    requirement_rules = (
        (("ios",), ("iOS development experience", "Swift proficiency", "App Store publishing")),
        (("product",), ("Product management experience", "Consumer app background", "Data-driven approach")),
    )
    default_requirements = ("BS in Computer Science", "3+ years software development", "Web technologies experience")
    trailing_requirements = ("Passion for outdoor activities",)
    benefits = ("Health insurance", "Equity", "Outdoor gear allowance", "Flexible PTO")
    description_suffix = "Join our mission to help people explore the outdoors and discover amazing trails."

    fallback_set = (
        {
            "title": "iOS Engineer",
            "department": "Engineering",
            "location": "San Francisco, CA",
            "employment_type": "full_time",
            "seniority": "mid",
            "description": (
                "Develop and maintain the AllTrails iOS app. Work on features for trail discovery, "
                "navigation, and community."
            ),
            "salary_min": 120_000,
            "salary_max": 180_000,
            "requirements": ("iOS development experience", "Swift proficiency", "App Store publishing"),
            "benefits": ("Health insurance", "Equity", "Outdoor gear allowance"),
        },
        {
            "title": "Product Manager",
            "department": "Product",
            "location": "Remote",
            "employment_type": "full_time",
            "seniority": "senior",
            "description": (
                "Lead product strategy for outdoor discovery features. Work with engineering and "
                "design to build amazing user experiences."
            ),
            "salary_min": 140_000,
            "salary_max": 200_000,
            "requirements": ("Product management experience", "Consumer app background", "Data-driven approach"),
            "benefits": ("Health insurance", "Stock options", "Remote work"),
        },
    )
