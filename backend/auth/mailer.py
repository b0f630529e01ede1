# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
OTP delivery.

The engine depends on the :class:`NotificationSink` protocol only; the SMTP
implementation below is what the running service wires in.  A sink either
returns normally (handed off) or raises :class:`core.errors.DeliveryError`.
"""

import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Protocol

from fastapi import Depends

from core.config import SMTP_SECURITY_MODES, Settings, get_settings
from core.errors import DeliveryError
from core.logger import logger, redact_email

_SUBJECT = "Your account activation code"

_HTML = """<html lang="en">
  <body style="font-family: Arial, sans-serif; background-color: #f4f4f4; padding: 20px;">
    <div style="max-width: 600px; margin: auto; background-color: #fff; padding: 30px; border-radius: 10px;">
      <h1 style="color: #007bff;">Hello, {name}</h1>
      <p>Your activation code is:</p>
      <div style="font-size: 24px; font-weight: bold; background-color: #f0f0f0; padding: 10px;
                  border-radius: 5px; display: inline-block;">{code}</div>
      <p>The code is valid for {minutes} minutes. Please do not share it with anyone.</p>
    </div>
  </body>
</html>"""

_TEXT = "Hello, {name}\n\nYour activation code is {code}.\nIt is valid for {minutes} minutes.\n"


class NotificationSink(Protocol):
    def send_otp(self, address: str, full_name: str, code: str) -> None: ...


class SmtpNotificationSink:
    """
    Send the activation code over SMTP.

    ``security`` picks how the connection is encrypted: ``"starttls"`` connects
    in plain text and upgrades (usually port 587), ``"ssl"`` speaks TLS from
    the first byte (implicit TLS, usually port 465).  There is no
    unencrypted mode.
    """

    def __init__(
        self,
        *,
        host: str,
        port: int = 587,
        user: str = "",
        password: str = "",
        security: str = "starttls",
        from_email: str = "",
        otp_minutes: int = 5,
        timeout: float = 30,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        if security not in SMTP_SECURITY_MODES:
            raise ValueError(f"security must be one of {SMTP_SECURITY_MODES}, got {security!r}")
        self.security = security
        self.from_email = from_email or user
        self.otp_minutes = otp_minutes
        self.timeout = timeout

    @classmethod
    def from_settings(cls, cfg: Settings) -> "SmtpNotificationSink":
        return cls(
            host=cfg.smtp_host,
            port=cfg.smtp_port,
            user=cfg.smtp_user,
            password=cfg.smtp_password,
            security=cfg.smtp_security,
            from_email=cfg.mail_from,
            otp_minutes=cfg.otp_expire_minutes,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.host and self.from_email)

    def _build(self, address: str, full_name: str, code: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = _SUBJECT
        msg["From"] = self.from_email
        msg["To"] = address
        fields = {"name": full_name, "code": code, "minutes": self.otp_minutes}
        msg.attach(MIMEText(_TEXT.format(**fields), "plain"))
        msg.attach(MIMEText(_HTML.format(**fields), "html"))
        return msg

    def _connect(self) -> smtplib.SMTP:
        context = ssl.create_default_context()
        if self.security == "ssl":
            return smtplib.SMTP_SSL(self.host, self.port, context=context, timeout=self.timeout)
        server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        try:
            server.starttls(context=context)
        except (smtplib.SMTPException, OSError):
            server.close()
            raise
        return server

    def send_otp(self, address: str, full_name: str, code: str) -> None:
        if not self.is_configured:
            raise DeliveryError("SMTP is not configured")

        msg = self._build(address, full_name, code)
        try:
            with self._connect() as server:
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.sendmail(self.from_email, [address], msg.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("mail: OTP delivery to %s failed: %s", redact_email(address), type(exc).__name__)
            raise DeliveryError("Failed to send OTP email") from exc

        logger.info("mail: OTP delivered to %s", redact_email(address))


def get_notification_sink(cfg: Settings = Depends(get_settings)) -> NotificationSink:
    """Dependency: the SMTP sink configured from the request's settings."""
    return SmtpNotificationSink.from_settings(cfg)
