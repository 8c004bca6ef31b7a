#!/usr/bin/env python
"""Print the full calculator-generation prompts for a request. Run from project root with venv activated."""
import sys
sys.path.insert(0, '.')

# Import app first to set up Flask (needed for bohocalc.projects... imports)
from bohocalc import create_app
app = create_app()
with app.app_context():
    from bohocalc.projects.marketplace.core.ai_prompt import build_system_prompt, build_user_prompt
    from bohocalc.projects.marketplace.core.constants import CATEGORIES

    prompt = sys.argv[1] if len(sys.argv) > 1 else "Calculate compound interest"
    user_input = sys.argv[2] if len(sys.argv) > 2 else None

    system_prompt = build_system_prompt(CATEGORIES)
    user_prompt = build_user_prompt(prompt, user_input)
    print("=" * 60)
    print("SYSTEM PROMPT")
    print("=" * 60)
    print(system_prompt)
    print("=" * 60)
    print("USER PROMPT")
    print("=" * 60)
    print(user_prompt)
    print("=" * 60)
    print(f"Length: {len(system_prompt) + len(user_prompt)} chars")
