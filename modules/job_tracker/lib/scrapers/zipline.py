# modules/job_tracker/lib/scrapers/zipline.py
from __future__ import annotations

from ..models import Employer
from .base import STARTUP_MULTIPLIERS, SourceExtractor
from .registry import register


@register
class ZiplineExtractor(SourceExtractor):
    """zipline.com/careers (medical drone delivery)."""

    slug = "zipline"
    employer = Employer(
        name="Zipline",
        slug="zipline",
        career_page_url="https://www.zipline.com/careers",
        industry="Drone Delivery",
        headquarters="South San Francisco, CA",
    )
    link_base = "https://www.zipline.com"

    card_selector = ".job-listing, .career-position, .position, [data-job]"
    title_selector = "h3, h4, .job-title, .position-title"
    department_selector = ".department, .team"
    location_selector = ".location, .office"

    department_rules = (
        (("robotics", "drone"), "Robotics"),
        (("flight", "aerospace"), "Flight Systems"),
        (("software", "engineer"), "Engineering"),
        (("operations", "logistics"), "Operations"),
        (("product",), "Product"),
    )

    salary_bands = (
        (("robotics", "flight"), (160_000, 240_000)),
        (("software", "engineer"), (140_000, 220_000)),
    )
    default_salary_band = (120_000, 200_000)
    salary_multipliers = STARTUP_MULTIPLIERS

    requirement_rules = (
        (
            ("robotics",),
            (
                "MS in Robotics/Aerospace Engineering",
                "Drone development experience",
                "C++/Python proficiency",
                "Control systems experience",
            ),
        ),
        (
            ("flight",),
            (
                "Embedded systems experience",
                "Real-time programming",
                "Safety-critical software",
                "Flight control systems",
            ),
        ),
        (
            ("software",),
            (
                "BS/MS in Computer Science",
                "5+ years software development",
                "Distributed systems experience",
            ),
        ),
    )
    trailing_requirements = ("Passion for humanitarian impact",)
    benefits = ("Health insurance", "Equity", "Relocation assistance", "Professional development")
    description_suffix = "Join our mission to deliver life-saving medical supplies via autonomous drones."

    fallback_set = (
        {
            "title": "Robotics Engineer",
            "department": "Engineering",
            "location": "South San Francisco, CA",
            "employment_type": "full_time",
            "seniority": "senior",
            "description": (
                "Design and develop autonomous drone systems for medical delivery. Work on flight "
                "control, navigation, and safety systems."
            ),
            "salary_min": 160_000,
            "salary_max": 240_000,
            "requirements": ("MS in Robotics/Aerospace", "Drone development experience", "C++/Python proficiency"),
            "benefits": ("Health insurance", "Equity", "Relocation assistance"),
        },
        {
            "title": "Flight Software Engineer",
            "department": "Engineering",
            "location": "South San Francisco, CA",
            "employment_type": "full_time",
            "seniority": "mid",
            "description": (
                "Develop flight control software for autonomous drones. Implement safety-critical "
                "systems and real-time control algorithms."
            ),
            "salary_min": 140_000,
            "salary_max": 200_000,
            "requirements": ("Embedded systems experience", "Real-time programming", "Safety-critical software"),
            "benefits": ("Health insurance", "Stock options", "Flexible PTO"),
        },
    )
