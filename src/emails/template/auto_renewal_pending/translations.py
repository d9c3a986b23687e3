DEFAULT_TRANSLATIONS = {
    "en": {
        "subject": "Your PromptFlow credits are being renewed",
        "heading": "Auto-renewal in progress",
        "greeting": "Hi {name},",
        "body": (
            "Your credit balance dropped below your auto-renewal threshold, so we "
            "started a charge of {amount} for the {bundle_name} bundle ({credits} "
            "credits). The credits will be added as soon as the payment clears."
        ),
        "cta": "View billing",
        "footer": "You can change or turn off auto-renewal at any time from your billing settings.",
    },
    "de": {
        "subject": "Deine PromptFlow-Credits werden erneuert",
        "heading": "Automatische Erneuerung läuft",
        "greeting": "Hallo {name},",
        "body": (
            "Dein Guthaben ist unter deinen Schwellenwert gefallen. Wir haben daher "
            "eine Zahlung von {amount} für das Paket {bundle_name} ({credits} Credits) "
            "gestartet. Die Credits werden gutgeschrieben, sobald die Zahlung bestätigt ist."
        ),
        "cta": "Abrechnung ansehen",
        "footer": "Du kannst die automatische Erneuerung jederzeit in deinen Abrechnungseinstellungen ändern oder deaktivieren.",
    },
    "es": {
        "subject": "Estamos renovando tus créditos de PromptFlow",
        "heading": "Renovación automática en curso",
        "greeting": "Hola {name}:",
        "body": (
            "Tu saldo bajó de tu umbral de renovación automática, así que iniciamos "
            "un cobro de {amount} por el paquete {bundle_name} ({credits} créditos). "
            "Los créditos se añadirán en cuanto se confirme el pago."
        ),
        "cta": "Ver facturación",
        "footer": "Puedes cambiar o desactivar la renovación automática en cualquier momento desde tu configuración de facturación.",
    },
    "fr": {
        "subject": "Vos crédits PromptFlow sont en cours de renouvellement",
        "heading": "Renouvellement automatique en cours",
        "greeting": "Bonjour {name},",
        "body": (
            "Votre solde est passé sous votre seuil de renouvellement automatique. "
            "Nous avons donc lancé un paiement de {amount} pour le pack {bundle_name} "
            "({credits} crédits). Les crédits seront ajoutés dès la confirmation du paiement."
        ),
        "cta": "Voir la facturation",
        "footer": "Vous pouvez modifier ou désactiver le renouvellement automatique à tout moment dans vos paramètres de facturation.",
    },
}
