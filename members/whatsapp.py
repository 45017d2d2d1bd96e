from django.conf import settings
from twilio.rest import Client
from twilio.base.exceptions import TwilioRestException
import logging
import re

logger = logging.getLogger(__name__)


def format_indian_phone_number(phone):
    if not phone:
        return None
    phone = re.sub(r'\D', '', phone)
    if phone.startswith('91') and len(phone) == 12:
        return f"+{phone}"
    if phone.startswith('0'):
        phone = phone[1:]
    return f"+91{phone}"


def send_whatsapp_message(to, message):
    """Send a WhatsApp text through Twilio and return the message SID."""
    formatted_phone = format_indian_phone_number(to)
    if not formatted_phone:
        raise ValueError("A phone number is required to send a WhatsApp message")

    logger.info(f"[WhatsApp] Sending message to: whatsapp:{formatted_phone}")
    try:
        client = Client(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)
        msg = client.messages.create(
            from_=settings.TWILIO_WHATSAPP_NUMBER,  # e.g. 'whatsapp:+14155238886'
            body=message,
            to=f'whatsapp:{formatted_phone}'
        )
    except TwilioRestException as e:
        logger.error(f"[WhatsApp] Twilio error: {e}")
        raise

    logger.info(f"[WhatsApp] Message sent successfully. SID: {msg.sid}")
    return msg.sid
