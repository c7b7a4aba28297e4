"""
Built-in option lists for profile fields. They back the profile form and
are merged into autocomplete suggestions so those are never empty.
"""

from typing import Any, Dict, List, Optional

DEFAULT_COUNTRIES = [
    "Jordan",
    "Saudi Arabia",
    "UAE",
    "Qatar",
    "Kuwait",
    "Bahrain",
    "Oman",
    "Palestine",
    "Egypt",
]

DEFAULT_CITIES_BY_COUNTRY = {
    "Jordan": ["Amman", "Irbid", "Zarqa", "Aqaba", "Salt", "Madaba", "Jerash", "Mafraq", "Karak", "Tafilah"],
    "Saudi Arabia": ["Riyadh", "Jeddah", "Mecca", "Medina", "Dammam", "Khobar", "Taif", "Abha"],
    "UAE": ["Dubai", "Abu Dhabi", "Sharjah", "Ajman", "Ras Al Khaimah", "Fujairah", "Umm Al Quwain"],
    "Qatar": ["Doha", "Al Rayyan", "Al Wakrah", "Al Khor", "Dukhan"],
    "Kuwait": ["Kuwait City", "Al Ahmadi", "Hawalli", "Farwaniya", "Jahra"],
    "Bahrain": ["Manama", "Riffa", "Muharraq", "Hamad Town", "Isa Town"],
    "Oman": ["Muscat", "Salalah", "Sohar", "Nizwa", "Sur"],
    "Palestine": ["Ramallah", "Jerusalem", "Bethlehem", "Nablus", "Hebron", "Gaza"],
    "Egypt": ["Cairo", "Alexandria", "Giza", "Shubra El Kheima", "Port Said"],
}

DEFAULT_HEARD_FROM = [
    "Facebook",
    "Instagram",
    "TikTok",
    "Google",
    "LinkedIn",
    "Friend",
    "WhatsApp",
    "Company website",
    "Other",
]

DEFAULT_SKILLS = ["HTML", "CSS", "JavaScript", "React", "Node.js", "Express", "SQL", "Git", "GitHub", "REST APIs"]

DEFAULT_INTERESTS = ["Frontend", "Backend", "Full-Stack", "AI", "Mobile", "UI/UX", "DevOps", "Databases"]

DEFAULT_EDUCATION_LEVELS = ["High School", "Diploma", "Bachelor", "Master", "PhD"]

DEFAULT_CURRENT_STATUS = ["Student", "Employed", "Freelance", "Looking for job"]

# Suggestion keys whose values depend on the selected country.
COUNTRY_SCOPED_KEYS = ("city", "university")

_DEFAULTS_BY_KEY = {
    "country": DEFAULT_COUNTRIES,
    "heardFrom": DEFAULT_HEARD_FROM,
    "skills": DEFAULT_SKILLS,
    "interests": DEFAULT_INTERESTS,
}


def default_suggestions(key: str, country: Optional[str] = None) -> List[str]:
    """
    Built-in values for a suggestion key.

    Cities need a known country; universities and majors have no defaults.
    """
    if key == "city":
        return list(DEFAULT_CITIES_BY_COUNTRY.get(country, [])) if country else []
    return list(_DEFAULTS_BY_KEY.get(key, []))


def profile_options() -> Dict[str, Any]:
    return {
        "countries": DEFAULT_COUNTRIES,
        "heardFrom": DEFAULT_HEARD_FROM,
        "educationLevels": DEFAULT_EDUCATION_LEVELS,
        "currentStatus": DEFAULT_CURRENT_STATUS,
        "skills": DEFAULT_SKILLS,
        "interests": DEFAULT_INTERESTS,
        "citiesByCountry": DEFAULT_CITIES_BY_COUNTRY,
    }
