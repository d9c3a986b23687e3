"""Render every email template to HTML files for visual review.

Run with ``python -m src.emails.preview``.
"""

from pathlib import Path
from typing import cast

from src.emails import (
    SUPPORTED_LOCALES,
    TEMPLATE_NAMES,
    LocaleType,
    TemplateType,
    render_email,
)

SAMPLE_CONTEXT = {
    "name": "Ada",
    "bundle_name": "Pro",
    "credits": "57,500,000",
    "amount": "$50.00",
    "balance": "58,120,000",
    "error_message": "Your card was declined.",
}


def generate_preview(
    template_name: str, locale: str, output_path: Path | None = None
) -> str:
    """Generate and optionally save email preview to HTML file."""
    email_data = render_email(
        template_name=cast(TemplateType, template_name),
        locale=cast(LocaleType, locale),
        context=SAMPLE_CONTEXT,
    )

    if output_path:
        output_path.write_text(email_data["html"])
        print(f"✓ Preview saved ({locale}): {output_path.name}")

    return email_data["html"]


if __name__ == "__main__":
    preview_dir = Path(__file__).parent / "previews"
    preview_dir.mkdir(exist_ok=True)

    for template_name in TEMPLATE_NAMES:
        for locale in SUPPORTED_LOCALES:
            generate_preview(
                template_name=template_name,
                locale=locale,
                output_path=preview_dir / f"{template_name}_preview_{locale}.html",
            )
