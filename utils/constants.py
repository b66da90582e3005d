"""
utils/constants.py

Purpose: Centralized static content

- All user-facing messages (French, the storefront's locale)
- Verification message template pieces
- Reusable constants

(Prevents hardcoding across the codebase)
"""

APP_NAME = "ShopShap"
DEFAULT_FLAG = "🌍"

# ============================================================
# REQUEST VALIDATION
# ============================================================

PHONE_REQUIRED_MESSAGE = "Numéro de téléphone requis"
PHONE_AND_CODE_REQUIRED_MESSAGE = "Numéro de téléphone et code requis"
INVALID_PHONE_MESSAGE = "Numéro de téléphone invalide"
UNSUPPORTED_NUMBER_MESSAGE = "Numéro non supporté. Pays supportés: {countries}"
INVALID_CODE_FORMAT_MESSAGE = "Le code doit contenir 6 chiffres"

# ============================================================
# SENDING CODES
# ============================================================

RATE_LIMITED_MESSAGE = "Trop de tentatives. Réessayez dans {minutes} minute(s)."
CODE_SENT_MESSAGE = "Code envoyé sur WhatsApp {flag} {name}"

GATEWAY_UNAVAILABLE_MESSAGE = "Service indisponible. Veuillez réessayer plus tard."
CHANNEL_UNSUPPORTED_MESSAGE = "Ce numéro ne peut pas recevoir de messages WhatsApp"
PERMISSION_DENIED_MESSAGE = "Permission refusée pour ce numéro"
DELIVERY_FAILED_MESSAGE = "Erreur lors de l'envoi. Veuillez réessayer."

# ============================================================
# VERIFYING CODES
# ============================================================

CODE_NOT_FOUND_MESSAGE = "Aucun code trouvé. Demandez un nouveau code."
CODE_EXPIRED_MESSAGE = "Code expiré. Demandez un nouveau code."
ATTEMPTS_EXHAUSTED_MESSAGE = "Code incorrect. Trop de tentatives. Demandez un nouveau code."
INCORRECT_CODE_MESSAGE = "Code incorrect. {remaining} tentative(s) restante(s)."
CODE_VERIFIED_MESSAGE = "Code vérifié avec succès"

INTEGRATION_WARNING_MESSAGE = "Code vérifié, mais problème d'intégration utilisateur"
INTERNAL_ERROR_MESSAGE = "Erreur interne du serveur"
DEBUG_UNAVAILABLE_MESSAGE = "Not available in production"

# ============================================================
# WHATSAPP VERIFICATION MESSAGE
# ============================================================

VERIFICATION_HEADER = "{flag} *" + APP_NAME + "* - Code de vérification"
VERIFICATION_INTRO = "Votre code de vérification WhatsApp est :"
VERIFICATION_EXPIRY = "⏰ Ce code expire dans {minutes} minutes."
VERIFICATION_WARNING = "🔒 Ne partagez jamais ce code avec qui que ce soit."
VERIFICATION_ORIGIN = "📍 Connexion depuis: {country}"
VERIFICATION_FOOTER = "Merci de faire confiance à " + APP_NAME + " ! 🛍️"

# ============================================================
# CLIENT-SIDE (login screen)
# ============================================================

ENTER_VALID_NUMBER_MESSAGE = "Veuillez entrer un numéro valide"
ENTER_CODE_MESSAGE = "Veuillez entrer le code de vérification"
MISSING_PHONE_MESSAGE = "Numéro de téléphone manquant"
NETWORK_ERROR_MESSAGE = "Erreur de connexion. Vérifiez votre réseau."
VERIFY_NETWORK_ERROR_MESSAGE = "Erreur de vérification. Veuillez réessayer."

CODE_SENT_TITLE = "Code envoyé ! 📱"
CODE_SENT_NOTICE = "Code WhatsApp envoyé {flag} {name}"
CODE_VERIFIED_TITLE = "Code vérifié ✅"
WELCOME_TITLE = "Bienvenue sur " + APP_NAME + " ! 🛍️"
ERROR_TITLE = "Erreur"

CODE_LENGTH = 6
