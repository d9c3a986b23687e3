DEFAULT_TRANSLATIONS = {
    "en": {
        "subject": "{credits} credits added to your PromptFlow account",
        "heading": "Credits renewed",
        "greeting": "Hi {name},",
        "body": "We charged {amount} and added the {bundle_name} bundle ({credits} credits) to your account.",
        "balance": "Your balance is now {balance} credits.",
        "cta": "View billing",
        "footer": "You can change or turn off auto-renewal at any time from your billing settings.",
    },
    "de": {
        "subject": "{credits} Credits wurden deinem PromptFlow-Konto gutgeschrieben",
        "heading": "Credits erneuert",
        "greeting": "Hallo {name},",
        "body": "Wir haben {amount} abgebucht und dir das Paket {bundle_name} ({credits} Credits) gutgeschrieben.",
        "balance": "Dein Guthaben beträgt jetzt {balance} Credits.",
        "cta": "Abrechnung ansehen",
        "footer": "Du kannst die automatische Erneuerung jederzeit in deinen Abrechnungseinstellungen ändern oder deaktivieren.",
    },
    "es": {
        "subject": "Se añadieron {credits} créditos a tu cuenta de PromptFlow",
        "heading": "Créditos renovados",
        "greeting": "Hola {name}:",
        "body": "Cobramos {amount} y añadimos el paquete {bundle_name} ({credits} créditos) a tu cuenta.",
        "balance": "Tu saldo actual es de {balance} créditos.",
        "cta": "Ver facturación",
        "footer": "Puedes cambiar o desactivar la renovación automática en cualquier momento desde tu configuración de facturación.",
    },
    "fr": {
        "subject": "{credits} crédits ajoutés à votre compte PromptFlow",
        "heading": "Crédits renouvelés",
        "greeting": "Bonjour {name},",
        "body": "Nous avons débité {amount} et ajouté le pack {bundle_name} ({credits} crédits) à votre compte.",
        "balance": "Votre solde est maintenant de {balance} crédits.",
        "cta": "Voir la facturation",
        "footer": "Vous pouvez modifier ou désactiver le renouvellement automatique à tout moment dans vos paramètres de facturation.",
    },
}
