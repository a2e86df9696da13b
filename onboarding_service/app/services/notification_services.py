import logging
from functools import lru_cache
from typing import Optional

from shared.core.config import settings
from shared.utils.email_client import EmailClient, EmailDeliveryError
from shared.utils.sms_client import SmsClient, SmsDeliveryError, TwilioConfig

logger = logging.getLogger(__name__)

EMAIL_OTP_SUBJECT = "Your organization verification code"

EMAIL_OTP_TEMPLATE = """
<html>
<body>
    <p>Hello {admin_name},</p>
    <p>Use the code below to verify <b>{org_name}</b>:</p>
    <h2>{code}</h2>
    <p>The code expires in {minutes} minutes.</p>
    <hr>
    <small>This is an automated email; please do not reply.</small>
</body>
</html>
"""

SMS_OTP_TEMPLATE = "{code} is your {org_name} verification code. It expires in {minutes} minutes."


class OTPNotifier:
    """
    Delivers one-time codes by email (SMTP) and SMS (Twilio).

    A channel without configuration logs the code at DEBUG so local setups can
    complete the flow. Delivery errors are logged and swallowed: the code is
    already persisted and the admin can ask for a resend.
    """

    def __init__(self, email_client: Optional[EmailClient] = None, sms_client: Optional[SmsClient] = None):
        self.email_client = email_client
        self.sms_client = sms_client

    def send_email_otp(self, email: str, admin_name: str, org_name: str, code: str) -> bool:
        if self.email_client is None:
            logger.warning("SMTP not configured; email OTP for %s not sent", email)
            logger.debug("Undelivered email OTP for %s: %s", email, code)
            return False
        html_body = EMAIL_OTP_TEMPLATE.format(
            admin_name=admin_name, org_name=org_name, code=code,
            minutes=settings.OTP_EXPIRE_MINUTES)
        try:
            self.email_client.send_email(
                sender=settings.EMAIL_SENDER,
                recipients=[email],
                subject=EMAIL_OTP_SUBJECT,
                text_body=f"Your verification code is {code}",
                html_body=html_body,
            )
        except EmailDeliveryError as exc:
            logger.error("Email OTP delivery to %s failed: %s", email, exc)
            return False
        return True

    def send_sms_otp(self, phone: str, org_name: str, code: str) -> bool:
        if self.sms_client is None:
            logger.warning("Twilio not configured; SMS OTP for %s not sent", phone)
            logger.debug("Undelivered SMS OTP for %s: %s", phone, code)
            return False
        body = SMS_OTP_TEMPLATE.format(
            code=code, org_name=org_name, minutes=settings.OTP_EXPIRE_MINUTES)
        try:
            self.sms_client.send_sms(phone, body)
        except SmsDeliveryError as exc:
            logger.error("SMS OTP delivery to %s failed: %s", phone, exc)
            return False
        return True


def build_notifier() -> OTPNotifier:
    email_client = None
    if settings.SMTP_HOST:
        email_client = EmailClient(
            smtp_host=settings.SMTP_HOST,
            smtp_port=settings.SMTP_PORT,
            username=settings.SMTP_USERNAME,
            password=settings.SMTP_PASSWORD,
            use_ssl=settings.SMTP_USE_SSL,
            timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
        )

    sms_client = None
    twilio_config = TwilioConfig(
        account_sid=settings.TWILIO_ACCOUNT_SID or "",
        auth_token=settings.TWILIO_AUTH_TOKEN or "",
        from_number=settings.TWILIO_FROM_NUMBER,
        timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
    )
    if twilio_config.is_configured:
        sms_client = SmsClient(twilio_config)

    return OTPNotifier(email_client=email_client, sms_client=sms_client)


@lru_cache
def get_notifier() -> OTPNotifier:
    return build_notifier()
