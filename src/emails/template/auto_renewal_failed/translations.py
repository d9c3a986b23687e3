DEFAULT_TRANSLATIONS = {
    "en": {
        "subject": "We couldn't renew your PromptFlow credits",
        "heading": "Auto-renewal failed",
        "greeting": "Hi {name},",
        "body": (
            "We tried to charge {amount} for the {bundle_name} bundle ({credits} "
            "credits), but the payment did not go through."
        ),
        "reason": "Reason:",
        "cta": "Update payment method",
        "footer": "We'll try again when your balance is next checked, up to three times a day.",
    },
    "de": {
        "subject": "Wir konnten deine PromptFlow-Credits nicht erneuern",
        "heading": "Automatische Erneuerung fehlgeschlagen",
        "greeting": "Hallo {name},",
        "body": (
            "Wir wollten {amount} für das Paket {bundle_name} ({credits} Credits) "
            "abbuchen, aber die Zahlung ist fehlgeschlagen."
        ),
        "reason": "Grund:",
        "cta": "Zahlungsmethode aktualisieren",
        "footer": "Wir versuchen es bei der nächsten Prüfung deines Guthabens erneut, höchstens dreimal pro Tag.",
    },
    "es": {
        "subject": "No pudimos renovar tus créditos de PromptFlow",
        "heading": "La renovación automática falló",
        "greeting": "Hola {name}:",
        "body": (
            "Intentamos cobrar {amount} por el paquete {bundle_name} ({credits} "
            "créditos), pero el pago no se completó."
        ),
        "reason": "Motivo:",
        "cta": "Actualizar método de pago",
        "footer": "Lo intentaremos de nuevo en la próxima revisión de tu saldo, hasta tres veces al día.",
    },
    "fr": {
        "subject": "Nous n'avons pas pu renouveler vos crédits PromptFlow",
        "heading": "Échec du renouvellement automatique",
        "greeting": "Bonjour {name},",
        "body": (
            "Nous avons tenté de débiter {amount} pour le pack {bundle_name} "
            "({credits} crédits), mais le paiement n'a pas abouti."
        ),
        "reason": "Motif :",
        "cta": "Mettre à jour le moyen de paiement",
        "footer": "Nous réessaierons lors de la prochaine vérification de votre solde, jusqu'à trois fois par jour.",
    },
}
