import logging
import smtplib
from datetime import datetime
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart

import requests

from .config import MigrationConfig

logger = logging.getLogger(__name__)


def send_alert(message: str, config: MigrationConfig) -> None:
    """Send alert via email and/or Slack"""
    logger.error(f"ALERT: {message}")

    if config.smtp_username and config.smtp_password and config.notification_email:
        try:
            _send_email_alert(message, config)
        except Exception as e:
            logger.error(f"Failed to send email alert: {e}")

    if config.slack_webhook:
        try:
            _send_slack_alert(message, config)
        except Exception as e:
            logger.error(f"Failed to send Slack alert: {e}")


def _send_email_alert(message: str, config: MigrationConfig) -> None:
    msg = MIMEMultipart()
    msg['From'] = config.smtp_username
    msg['To'] = config.notification_email
    msg['Subject'] = "HTLC Migration Alert"

    body = f"""
    HTLC Migration Alert

    Time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}
    RPC: {config.rpc_url}
    Message: {message}
    """
    msg.attach(MIMEText(body, 'plain'))

    server = smtplib.SMTP(config.smtp_server, config.smtp_port)
    try:
        server.starttls()
        server.login(config.smtp_username, config.smtp_password)
        server.send_message(msg)
    finally:
        server.quit()


def _send_slack_alert(message: str, config: MigrationConfig) -> None:
    payload = {
        "text": f"HTLC Migration Alert: {message}",
        "attachments": [
            {
                "fields": [
                    {"title": "RPC", "value": config.rpc_url, "short": True},
                    {"title": "Time", "value": datetime.now().isoformat(), "short": True},
                ]
            }
        ]
    }

    response = requests.post(config.slack_webhook, json=payload, timeout=10)
    response.raise_for_status()
