"""
Section Registry - the parts of BohoCalc listed on the index endpoint.

To add a new section:
1. Create the section directory and routes
2. Register the blueprint in bohocalc/__init__.py
3. Add an entry to SECTIONS below
"""

SECTIONS = [
    {
        'id': 'calculator',
        'name': 'Calculator',
        'description': 'Basic four-function calculator',
        'url': '/calculator',
        'auth_required': False,
        'status': 'active',
        'order': 1
    },
    {
        'id': 'marketplace',
        'name': 'Calculator Marketplace',
        'description': 'Browse, run and rate calculators built by the community, or create one with AI',
        'url': '/marketplace',
        'auth_required': False,
        'status': 'active',
        'order': 2
    },
    {
        'id': 'history',
        'name': 'History',
        'description': 'Your saved calculations, with tags, notes and CSV export',
        'url': '/history',
        'auth_required': True,
        'status': 'active',
        'order': 3
    },
]


def get_all_sections():
    """
    Get all sections from the registry.

    Returns:
        list: List of all sections sorted by order
    """
    return sorted(SECTIONS, key=lambda x: x['order'])


def get_sections_for_user(is_authenticated):
    """
    Get sections with an 'available' flag set from the user's authentication status.

    Args:
        is_authenticated (bool): Whether the user is logged in

    Returns:
        list: Section copies with 'available' set
    """
    sections = []
    for section in get_all_sections():
        section_copy = section.copy()
        # Available if active AND (no auth required OR user is authenticated)
        section_copy['available'] = (
            section['status'] == 'active' and
            (not section['auth_required'] or is_authenticated)
        )
        sections.append(section_copy)
    return sections
