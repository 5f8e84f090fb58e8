# modules/job_tracker/lib/scrapers/waymo.py
from __future__ import annotations

from ..models import Employer
from .base import SourceExtractor
from .registry import register


@register
class WaymoExtractor(SourceExtractor):
    """waymo.com/careers (Alphabet self-driving)."""

    slug = "waymo"
    employer = Employer(
        name="Waymo",
        slug="waymo",
        career_page_url="https://waymo.com/careers",
        industry="Self-Driving Cars",
        headquarters="Mountain View, CA",
    )
    link_base = "https://waymo.com"

    department_rules = (
        (("perception", "computer vision"), "Perception"),
        (("motion", "planning"), "Motion Planning"),
        (("simulation", "testing"), "Simulation"),
        (("hardware", "systems"), "Hardware"),
        (("software", "engineer"), "Engineering"),
        (("product",), "Product"),
    )

    salary_bands = ((("perception", "planning"), (180_000, 320_000)),)
    default_salary_band = (160_000, 280_000)

    requirement_rules = (
        (("perception",), ("MS/PhD in Computer Vision", "Deep learning expertise", "Autonomous vehicle experience")),
        (("planning",), ("Robotics/CS background", "Motion planning experience", "Optimization algorithms")),
    )
    default_requirements = ("BS/MS in Computer Science", "5+ years software development", "C++/Python proficiency")
    benefits = ("Google benefits", "Stock options", "Transportation", "Professional development")
    description_suffix = "Join Alphabet's Waymo team developing autonomous vehicle technology."

    fallback_set = (
        {
            "title": "Perception Engineer",
            "department": "Engineering",
            "location": "Mountain View, CA",
            "employment_type": "full_time",
            "seniority": "senior",
            "description": (
                "Develop perception systems for autonomous vehicles. Work with computer vision, "
                "sensor fusion, and deep learning."
            ),
            "salary_min": 180_000,
            "salary_max": 300_000,
            "requirements": ("MS/PhD in Computer Vision", "Deep learning expertise", "Autonomous vehicle experience"),
            "benefits": ("Google benefits", "Stock options", "Transportation"),
        },
        {
            "title": "Motion Planning Engineer",
            "department": "Engineering",
            "location": "Mountain View, CA",
            "employment_type": "full_time",
            "seniority": "senior",
            "description": (
                "Design motion planning algorithms for autonomous vehicles. Work on path planning, "
                "trajectory optimization, and behavior prediction."
            ),
            "salary_min": 175_000,
            "salary_max": 290_000,
            "requirements": ("Robotics/CS background", "Motion planning experience", "Optimization algorithms"),
            "benefits": ("Google benefits", "Equity", "Professional development"),
        },
    )
