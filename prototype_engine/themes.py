"""
Design system themes a project can be built on.

Each theme carries the design tokens handed to the model as the
structural foundation of the prototype. The inspiration image still
decides the visual mood.
"""
import json
from typing import Any, Dict, List


MATERIAL_DESIGN_TOKENS = {
    "sys": {
        "color": {
            "primary": "#6750A4",
            "on-primary": "#FFFFFF",
            "primary-container": "#EADDFF",
            "on-primary-container": "#21005D",
            "secondary": "#625B71",
            "on-secondary": "#FFFFFF",
            "secondary-container": "#E8DEF8",
            "on-secondary-container": "#1D192B",
            "tertiary": "#7D5260",
            "on-tertiary": "#FFFFFF",
            "tertiary-container": "#FFD8E4",
            "on-tertiary-container": "#31111D",
            "error": "#B3261E",
            "on-error": "#FFFFFF",
            "error-container": "#F9DEDC",
            "on-error-container": "#410E0B",
            "background": "#FFFBFE",
            "on-background": "#1C1B1F",
            "surface": "#FFFBFE",
            "on-surface": "#1C1B1F",
            "surface-variant": "#E7E0EC",
            "on-surface-variant": "#49454F",
            "outline": "#79747E",
            "shadow": "#000000",
            "inverse-surface": "#313033",
            "inverse-on-surface": "#F4EFF4",
            "inverse-primary": "#D0BCFF",
        },
        "typescale": {
            "display-large": {"family": "Roboto Serif", "weight": "400", "size": "57px", "line-height": "64px"},
            "display-medium": {"family": "Roboto Serif", "weight": "400", "size": "45px", "line-height": "52px"},
            "display-small": {"family": "Roboto Serif", "weight": "400", "size": "36px", "line-height": "44px"},
            "headline-large": {"family": "Roboto Serif", "weight": "400", "size": "32px", "line-height": "40px"},
            "headline-medium": {"family": "Roboto Serif", "weight": "400", "size": "28px", "line-height": "36px"},
            "headline-small": {"family": "Roboto Serif", "weight": "400", "size": "24px", "line-height": "32px"},
            "title-large": {"family": "Roboto Flex", "weight": "500", "size": "22px", "line-height": "28px"},
            "title-medium": {"family": "Roboto Flex", "weight": "500", "size": "16px", "line-height": "24px"},
            "title-small": {"family": "Roboto Flex", "weight": "500", "size": "14px", "line-height": "20px"},
            "label-large": {"family": "Roboto Flex", "weight": "500", "size": "14px", "line-height": "20px"},
            "label-medium": {"family": "Roboto Flex", "weight": "500", "size": "12px", "line-height": "16px"},
            "label-small": {"family": "Roboto Flex", "weight": "500", "size": "11px", "line-height": "16px"},
            "body-large": {"family": "Roboto Flex", "weight": "400", "size": "16px", "line-height": "24px"},
            "body-medium": {"family": "Roboto Flex", "weight": "400", "size": "14px", "line-height": "20px"},
            "body-small": {"family": "Roboto Flex", "weight": "400", "size": "12px", "line-height": "16px"},
        },
        "shape": {
            "corner": {
                "extra-small": "4px",
                "small": "8px",
                "medium": "12px",
                "large": "16px",
                "extra-large": "28px",
                "full": "9999px",
            }
        },
        "spacing": {
            "xs": "4px",
            "sm": "8px",
            "md": "16px",
            "lg": "24px",
            "xl": "32px",
            "2xl": "48px",
        },
    }
}


THEMES: Dict[str, Dict[str, Any]] = {
    "Material Design": {
        "name": "Material Design",
        "description": "Google's adaptable design system.",
        "tokens": MATERIAL_DESIGN_TOKENS,
    },
}


def get_available_themes() -> List[Dict[str, str]]:
    """Theme list without the token payloads"""
    return [
        {"name": theme["name"], "description": theme["description"]}
        for theme in THEMES.values()
    ]


def is_known_theme(name: str) -> bool:
    return name in THEMES


def theme_prompt_section(name: str) -> str:
    """Prompt fragment describing the theme's tokens (empty for unknown themes)."""
    theme = THEMES.get(name)
    if not theme:
        return ""
    return (
        f"--- DESIGN SYSTEM: {theme['name']} ---\n"
        "Ground layout, components and spacing in these design tokens. "
        "Expose the colors as CSS custom properties.\n"
        f"```json\n{json.dumps(theme['tokens'], indent=2)}\n```"
    )
