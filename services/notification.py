# services/notification.py

import logging
from threading import Thread

import pytz
from flask import current_app
from flask_mail import Message
from markupsafe import escape

from db.extensions import mail

logger = logging.getLogger(__name__)


def send_async_email(app, msg):
    """Send email in a background thread"""
    with app.app_context():
        try:
            mail.send(msg)
            app.logger.info("✅ Booking confirmation sent in background")
        except Exception as e:
            app.logger.error(f"❌ Failed to send booking confirmation asynchronously: {str(e)}")


def to_local(value, tz_name):
    """Render a naive UTC datetime in the facility timezone."""
    if value is None:
        return 'N/A'
    local = pytz.utc.localize(value).astimezone(pytz.timezone(tz_name))
    return local.strftime('%Y-%m-%d %H:%M %Z')


class BookingNotificationService:
    """Reservation confirmation emails, sent once per created booking."""

    @staticmethod
    def build_confirmation(booking, slot):
        facility = current_app.config.get('FACILITY_NAME', 'Smart Parking')
        tz_name = current_app.config.get('FACILITY_TIMEZONE', 'UTC')
        start = to_local(booking.start_time, tz_name)
        end = to_local(booking.end_time, tz_name)

        subject = f"{facility} Reservation Confirmed - Booking #{booking.id}"
        # Requester-supplied values go into markup escaped
        safe = {
            'facility': escape(facility),
            'name': escape(booking.name),
            'slot': escape(slot.slot_number),
            'tag': escape(booking.rfid_tag_id),
        }

        html_body = f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>Parking Reservation Confirmation</title>
    <style>
        body {{ font-family: Arial, sans-serif; color: #333; background: #f5f5f5; }}
        .main {{ max-width: 600px; margin: auto; padding: 20px; background: #fff; border: 1px solid #eee; }}
        h1 {{ font-size: 20px; color: #1a73e8; }}
        table {{ border-collapse: collapse; width: 100%; margin-bottom: 15px; }}
        th, td {{ border: 1px solid #ddd; padding: 8px; font-size: 14px; }}
        th {{ background: #f3f3f3; text-align: left; font-weight: bold; width: 40%; }}
        .footer {{ color: #888; font-size: 11px; text-align: center; border-top: 1px solid #eee; margin-top: 30px; padding-top: 8px; }}
    </style>
</head>
<body>
<div class="main">
    <h1>{safe['facility']} Reservation Confirmed</h1>
    <p>Dear {safe['name']},</p>
    <p>Your parking reservation has been <b>successfully confirmed</b>. Please find your booking details below.</p>
    <table>
        <tr><th>Booking ID</th><td>{booking.id}</td></tr>
        <tr><th>Slot</th><td>{safe['slot']}</td></tr>
        <tr><th>RFID Tag ID</th><td>{safe['tag']}</td></tr>
        <tr><th>Start Time</th><td>{start}</td></tr>
        <tr><th>End Time</th><td>{end}</td></tr>
    </table>
    <ol>
        <li>Hold your RFID tag near the reader at the entrance, from your start time onwards.</li>
        <li>Park only in your assigned slot.</li>
        <li>Scan the same tag again at the exit gate when you leave.</li>
        <li>Reservations without an entry scan are released once the end time has passed.</li>
    </ol>
    <div class="footer">
        {safe['facility']} | This is an automated message.
    </div>
</div>
</body>
</html>
"""

        text_body = f"""
{facility} Reservation Confirmed

Dear {booking.name},

Your parking reservation has been successfully confirmed.

Booking ID: {booking.id}
Slot: {slot.slot_number}
RFID Tag ID: {booking.rfid_tag_id}
Start Time: {start}
End Time: {end}

Scan your RFID tag at the entrance from your start time onwards, and again at the exit when you leave.
Reservations without an entry scan are released once the end time has passed.

{facility}
"""

        return Message(
            subject,
            recipients=[booking.email],
            sender=current_app.config.get('MAIL_DEFAULT_SENDER'),
            body=text_body,
            html=html_body,
        )

    def notify(self, booking, slot):
        """Fire-and-forget: failures are logged, never raised."""
        try:
            msg = self.build_confirmation(booking, slot)

            if current_app.config.get('MAIL_ASYNC', True):
                app = current_app._get_current_object()
                Thread(target=send_async_email, args=(app, msg), daemon=True).start()
                logger.info(f"Booking confirmation for {booking.id} queued to {booking.email}")
                return True

            mail.send(msg)
            logger.info(f"✅ Booking confirmation for {booking.id} sent to {booking.email}")
            return True
        except Exception as e:
            logger.error(f"❌ Failed to send booking confirmation for {booking.id}: {str(e)}")
            return False
