"""
Industry and template catalog plus the word lists used to invent
business profiles for the intake wizard.
"""
from typing import Dict, List

from ..domain import Industry, Template


INDUSTRIES: List[Industry] = [
    Industry("restaurant", "Restaurant"),
    Industry("real-estate", "Real Estate"),
    Industry("law-firm", "Law Firm"),
    Industry("healthcare", "Healthcare"),
    Industry("fitness", "Fitness & Gym"),
    Industry("salon", "Hair Salon & Spa"),
    Industry("auto-repair", "Auto Repair"),
    Industry("plumbing", "Plumbing"),
    Industry("electrical", "Electrical Services"),
    Industry("landscaping", "Landscaping"),
    Industry("photography", "Photography"),
    Industry("dental", "Dental Practice"),
    Industry("veterinary", "Veterinary Clinic"),
    Industry("accounting", "Accounting & CPA"),
    Industry("insurance", "Insurance Agency"),
    Industry("construction", "Construction"),
    Industry("hvac", "HVAC Services"),
    Industry("cleaning", "Cleaning Services"),
    Industry("moving", "Moving Company"),
    Industry("roofing", "Roofing"),
    Industry("flooring", "Flooring"),
    Industry("painting", "Painting Services"),
    Industry("pest-control", "Pest Control"),
    Industry("locksmith", "Locksmith"),
    Industry("towing", "Towing Service"),
    Industry("daycare", "Daycare Center"),
    Industry("tutoring", "Tutoring Services"),
    Industry("pet-grooming", "Pet Grooming"),
    Industry("bakery", "Bakery"),
    Industry("coffee-shop", "Coffee Shop"),
    Industry("bar", "Bar & Lounge"),
    Industry("catering", "Catering"),
    Industry("food-truck", "Food Truck"),
    Industry("yoga", "Yoga Studio"),
    Industry("martial-arts", "Martial Arts"),
    Industry("dance", "Dance Studio"),
    Industry("music", "Music School"),
    Industry("art", "Art Gallery"),
    Industry("jewelry", "Jewelry Store"),
    Industry("florist", "Florist"),
    Industry("tailor", "Tailor & Alterations"),
    Industry("laundry", "Laundry Service"),
    Industry("shoe-repair", "Shoe Repair"),
    Industry("print-shop", "Print Shop"),
    Industry("tech-support", "Tech Support"),
    Industry("web-design", "Web Design Agency"),
    Industry("marketing", "Marketing Agency"),
    Industry("consulting", "Business Consulting"),
    Industry("staffing", "Staffing Agency"),
    Industry("travel", "Travel Agency"),
]

TEMPLATES: List[Template] = [
    Template("modern-minimal", "Modern Minimal"),
    Template("professional-corporate", "Professional Corporate"),
    Template("creative-bold", "Creative Bold"),
    Template("elegant-classic", "Elegant Classic"),
    Template("tech-startup", "Tech Startup", "tech"),
    Template("warm-friendly", "Warm & Friendly", "service"),
    Template("luxurious", "Luxurious", "premium"),
    Template("playful-fun", "Playful & Fun", "entertainment"),
]

BUSINESS_PREFIXES = [
    "Elite", "Premier", "Pro", "Quality", "Superior", "Prime", "Express", "Royal",
    "Golden", "Diamond", "Platinum", "Sterling", "Classic", "Modern", "Advanced",
    "Swift", "Reliable", "Trusted", "Expert", "Master", "Ace", "Top", "First Choice",
]

BUSINESS_SUFFIXES = [
    "Solutions", "Services", "Group", "Co.", "LLC", "Associates", "Partners",
    "Professionals", "Experts", "Specialists", "Team", "Hub", "Center", "Plus",
]

CITY_NAMES = [
    "Austin", "Denver", "Seattle", "Portland", "Phoenix", "Miami", "Atlanta",
    "Boston", "Chicago", "Dallas", "Houston", "Nashville", "Charlotte", "Orlando",
    "San Diego", "Tampa", "Raleigh", "Minneapolis", "Detroit", "Cleveland",
]

DESCRIPTIONS: Dict[str, List[str]] = {
    "restaurant": [
        "We serve delicious homemade cuisine with fresh, locally-sourced ingredients.",
        "Experience fine dining in a warm and welcoming atmosphere.",
        "Family-owned restaurant serving authentic recipes for over 20 years.",
    ],
    "real-estate": [
        "Your trusted partner in finding the perfect home or investment property.",
        "Expert real estate services for buyers, sellers, and investors.",
        "Making your real estate dreams a reality with personalized service.",
    ],
    "law-firm": [
        "Dedicated legal representation with a focus on client success.",
        "Experienced attorneys providing compassionate and effective legal counsel.",
        "Fighting for your rights with integrity and professionalism.",
    ],
    "default": [
        "Professional services tailored to meet your unique needs.",
        "Quality and excellence in everything we do.",
        "Your satisfaction is our top priority.",
    ],
}

SERVICES: Dict[str, List[str]] = {
    "restaurant": ["Dine-in", "Takeout", "Catering", "Private Events", "Delivery"],
    "real-estate": ["Home Buying", "Home Selling", "Property Management", "Investment Consulting", "Market Analysis"],
    "law-firm": ["Family Law", "Business Law", "Personal Injury", "Estate Planning", "Criminal Defense"],
    "healthcare": ["Primary Care", "Preventive Medicine", "Chronic Disease Management", "Telemedicine", "Lab Services"],
    "fitness": ["Personal Training", "Group Classes", "Nutrition Coaching", "Weight Loss Programs", "Sports Training"],
    "salon": ["Haircuts", "Color Services", "Styling", "Manicure/Pedicure", "Facial Treatments"],
    "default": ["Consultation", "Service A", "Service B", "Custom Solutions", "Support"],
}
