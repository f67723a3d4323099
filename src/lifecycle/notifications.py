"""Contract emails sent to clients on creation and on reminder."""

import logging

from src.integrations.email.email_service import EmailMessage, EmailSender

logger = logging.getLogger(__name__)


class NotificationTrigger:
    def __init__(self, sender: EmailSender, app_base_url: str, platform_name: str = "Egreed Technology") -> None:
        self.sender = sender
        self.app_base_url = app_base_url.rstrip("/")
        self.platform_name = platform_name

    def signing_link(self, contract_ref: str) -> str:
        return f"{self.app_base_url}/contracts/{contract_ref}/sign"

    def send_contract_email(self, *, to: str, contract_ref: str, access_code: str, amount: float,
                            currency: str, is_reminder: bool = False) -> EmailMessage:
        if is_reminder:
            subject = f"Reminder: contract {contract_ref} is waiting for your signature"
        else:
            subject = f"{self.platform_name}: contract {contract_ref} ready to sign"

        body = "\n".join([
            "Hello,",
            "",
            f"Contract {contract_ref} for {amount:,.2f} {currency} is ready for your signature.",
            f"Open {self.signing_link(contract_ref)} and enter this access code: {access_code}",
            "The code is valid for 7 days.",
            "",
            self.platform_name,
        ])
        message = EmailMessage(to=to, subject=subject, body=body)
        self.sender.send(message)
        logger.info("Contract email sent: ref=%s reminder=%s", contract_ref, is_reminder)
        return message
