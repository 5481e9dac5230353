import asyncio
import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from ..config import Settings
from ..domain.repositories import PaymentNotifier, ReservationView
from ..utils.time import utc_naive_to_site

logger = logging.getLogger(__name__)


def render_payment_confirmation(view: ReservationView, checkin_code: str) -> tuple[str, str]:
    reservation = view.reservation
    starts = view.starts_at
    when = utc_naive_to_site(starts).strftime("%d/%m/%Y %H:%M") if starts is not None else ""
    amount = reservation.amount_cents / 100
    subject = f"Payment confirmed - reservation {reservation.id}"
    body = f"""
    <p>Hello <strong>{html.escape(reservation.holder_name)}</strong>,</p>
    <p>Your payment has been <strong>confirmed</strong> for the following reservation:</p>
    <ul>
      <li><strong>Activity:</strong> {html.escape(view.activity_name)}</li>
      <li><strong>Reservation:</strong> {html.escape(reservation.id)}</li>
      <li><strong>Schedule:</strong> {when}</li>
      <li><strong>People:</strong> {reservation.party_size}</li>
      <li><strong>Amount paid:</strong> $ {amount:.2f} MXN</li>
    </ul>
    <p>Your <strong>check-in code</strong> is:</p>
    <h2 style="letter-spacing:3px;font-family:monospace;">{html.escape(checkin_code)}</h2>
    <p>Keep this email and show the code when you arrive.</p>
    """
    return subject, body


class SmtpPaymentNotifier(PaymentNotifier):
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @property
    def configured(self) -> bool:
        return bool(self.settings.smtp_host)

    async def notify_payment_confirmed(self, view: ReservationView, checkin_code: str) -> bool:
        if not self.configured:
            logger.info("SMTP not configured; skipping payment email for %s", view.reservation.id)
            return False
        if not view.reservation.email:
            logger.info("reservation %s has no email; skipping payment email", view.reservation.id)
            return False
        subject, body = render_payment_confirmation(view, checkin_code)
        return await asyncio.to_thread(self._send, view.reservation.email, subject, body)

    def _send(self, to_addr: str, subject: str, html_body: str) -> bool:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.settings.mail_from
        msg["To"] = to_addr
        msg.attach(MIMEText(html_body, "html"))
        try:
            with smtplib.SMTP(
                self.settings.smtp_host or "",
                self.settings.smtp_port,
                timeout=self.settings.smtp_timeout_seconds,
            ) as server:
                if self.settings.smtp_starttls:
                    server.starttls()
                if self.settings.smtp_user:
                    server.login(self.settings.smtp_user, self.settings.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send payment email to %s: %s", to_addr, exc)
            return False
        logger.info("Payment email sent to %s", to_addr)
        return True
