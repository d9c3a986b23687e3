import importlib
from pathlib import Path
from typing import Any, Literal, TypedDict

from jinja2 import Environment, FileSystemLoader, select_autoescape

TemplateType = Literal[
    "auto_renewal_pending",
    "auto_renewal_succeeded",
    "auto_renewal_failed",
]
LocaleType = Literal["de", "en", "es", "fr"]

SUPPORTED_LOCALES: tuple[str, ...] = ("de", "en", "es", "fr")
TEMPLATE_NAMES: tuple[str, ...] = (
    "auto_renewal_pending",
    "auto_renewal_succeeded",
    "auto_renewal_failed",
)


class EmailData(TypedDict):
    html: str
    subject: str
    reply_to: str


TEMPLATE_DIR = Path(__file__).parent / "template"
BASE_APP_URL = "https://app.promptflow.ai"

jinja_env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(["html", "xml"]),
)


def get_localized_url(locale: str, path: str = "billing") -> str:
    """Generate localized URL for the PromptFlow app."""
    return f"{BASE_APP_URL}/{locale}/{path}"


def render_email(
    template_name: TemplateType,
    locale: LocaleType = "en",
    context: dict[str, Any] | None = None,
) -> EmailData:
    translations_module = importlib.import_module(
        f"src.emails.template.{template_name}.translations"
    )
    default_translations = translations_module.DEFAULT_TRANSLATIONS

    translations = default_translations.get(locale, default_translations["en"])
    context = dict(context or {})
    context.setdefault("billing_url", get_localized_url(locale))

    template = jinja_env.get_template(f"{template_name}/{template_name}.html")

    html_content = template.render(translations=translations, **context)

    return EmailData(
        html=html_content,
        subject=translations["subject"].format(**context),
        reply_to=translations.get("reply_to", "support@promptflow.ai"),
    )
