from utils.validation_utils import SUPPORTED_COUNTRIES
from utils.whatsapp_utils import build_verification_message, to_whatsapp_address

SENEGAL = next(c for c in SUPPORTED_COUNTRIES if c.code == "SN")


def test_message_with_country():
    message = build_verification_message("482913", SENEGAL)

    assert message == (
        "🇸🇳 *ShopShap* - Code de vérification\n"
        "\n"
        "Votre code de vérification WhatsApp est :\n"
        "\n"
        "*482913*\n"
        "\n"
        "⏰ Ce code expire dans 10 minutes.\n"
        "🔒 Ne partagez jamais ce code avec qui que ce soit.\n"
        "\n"
        "📍 Connexion depuis: Sénégal\n"
        "Merci de faire confiance à ShopShap ! 🛍️"
    )


def test_message_without_country_uses_globe_and_skips_origin():
    message = build_verification_message("482913")

    assert message.startswith("🌍 *ShopShap*")
    assert "Connexion depuis" not in message
    assert "*482913*" in message


def test_message_shows_configured_expiry():
    assert "expire dans 5 minutes" in build_verification_message("482913", SENEGAL, expiry_minutes=5)


def test_whatsapp_address():
    assert to_whatsapp_address("+221701234567") == "whatsapp:+221701234567"
    assert to_whatsapp_address("whatsapp:+221701234567") == "whatsapp:+221701234567"
