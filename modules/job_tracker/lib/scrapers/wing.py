# modules/job_tracker/lib/scrapers/wing.py
from __future__ import annotations

from ..models import Employer
from .base import SourceExtractor
from .registry import register


@register
class WingExtractor(SourceExtractor):
    """wing.com/careers (Alphabet delivery drones)."""

    slug = "wing"
    employer = Employer(
        name="Wing",
        slug="wing",
        career_page_url="https://wing.com/careers",
        industry="Autonomous Delivery",
        headquarters="Palo Alto, CA",
    )
    link_base = "https://wing.com"

    department_rules = (
        (("autonomy", "perception"), "Autonomy"),
        (("hardware", "mechanical"), "Hardware"),
        (("software", "engineer"), "Engineering"),
        (("product",), "Product"),
        (("operations",), "Operations"),
    )

    salary_bands = ((("autonomy", "perception"), (170_000, 280_000)),)
    default_salary_band = (150_000, 250_000)

    requirement_rules = (
        (("autonomy",), ("PhD in Robotics/CS", "Autonomous systems experience", "Machine learning background")),
        (
            ("hardware",),
            ("Mechanical/Electrical engineering degree", "Hardware design experience", "CAD proficiency"),
        ),
    )
    default_requirements = ("BS/MS in Computer Science", "5+ years software development")
    benefits = ("Google benefits", "Stock grants", "Sabbatical program", "Health and wellness")
    description_suffix = "Join Alphabet's Wing team developing autonomous delivery drones."

    fallback_set = (
        {
            "title": "Autonomy Engineer",
            "department": "Engineering",
            "location": "Palo Alto, CA",
            "employment_type": "full_time",
            "seniority": "senior",
            "description": (
                "Develop autonomous systems for delivery drones. Work on perception, planning, "
                "and control systems."
            ),
            "salary_min": 170_000,
            "salary_max": 260_000,
            "requirements": ("PhD in Robotics/CS", "Autonomous systems experience", "Machine learning background"),
            "benefits": ("Google benefits", "Stock grants", "Sabbatical program"),
        },
        {
            "title": "Hardware Engineer",
            "department": "Engineering",
            "location": "Palo Alto, CA",
            "employment_type": "full_time",
            "seniority": "mid",
            "description": (
                "Design and develop drone hardware systems. Work on mechanical design, electronics, "
                "and integration."
            ),
            "salary_min": 130_000,
            "salary_max": 190_000,
            "requirements": (
                "Mechanical/Electrical engineering degree",
                "Hardware design experience",
                "CAD proficiency",
            ),
            "benefits": ("Google benefits", "Equity", "Health and wellness"),
        },
    )
