"""Email service for submitter, applicant and admin notifications."""
import asyncio
import base64
import logging
from typing import Optional

from jobboard.config import settings
from jobboard.exceptions import UpstreamError

logger = logging.getLogger(__name__)


class EmailService:
    """Handles email sending in dev and production modes."""

    def __init__(self, mode: Optional[str] = None):
        self.mode = mode or settings.email_mode
        if self.mode == "prod":
            try:
                from sendgrid import SendGridAPIClient
                self.sendgrid_client = SendGridAPIClient(settings.sendgrid_api_key)
            except ImportError:
                logger.error("SendGrid not installed but email_mode is 'prod'")
                raise
        else:
            self.sendgrid_client = None

    async def send(
        self,
        from_email: str,
        to_email: str,
        subject: str,
        body: str,
        attachment: Optional[bytes] = None,
        attachment_name: str = "cv.pdf",
    ) -> None:
        """
        Send a plain-text email, optionally with one PDF attachment.

        Raises:
            UpstreamError: If the provider rejects the message or is unreachable
        """
        if self.mode == "dev":
            logger.info(f"[DEV MODE] Email from {from_email} to {to_email}: {subject}")
            logger.info(f"[DEV MODE] Content:\n{body}")
            if attachment is not None:
                logger.info(f"[DEV MODE] Attachment {attachment_name} ({len(attachment)} bytes)")
            return

        try:
            from sendgrid.helpers.mail import (
                Attachment,
                Disposition,
                FileContent,
                FileName,
                FileType,
                Mail,
            )

            mail = Mail(
                from_email=from_email,
                to_emails=to_email,
                subject=subject,
                plain_text_content=body,
            )
            if attachment is not None:
                mail.attachment = Attachment(
                    FileContent(base64.b64encode(attachment).decode()),
                    FileName(attachment_name),
                    FileType("application/pdf"),
                    Disposition("attachment"),
                )

            response = await asyncio.to_thread(self.sendgrid_client.send, mail)
        except Exception as e:
            logger.error(f"Error sending email to {to_email}: {str(e)}")
            raise UpstreamError("email", str(e)) from e

        if not 200 <= response.status_code < 300:
            logger.error(f"Failed to send email to {to_email}: {response.status_code}")
            raise UpstreamError("email", f"status {response.status_code}")

        logger.info(f"Email sent to {to_email}: {subject}")

    async def send_new_job_notice(self, submitter_email: str, token: str) -> None:
        """Tell the admin a new ad is waiting for approval."""
        await self.send(
            settings.email_from,
            settings.admin_email,
            "New Job Ad",
            f"Hey! There is a new job ad from {submitter_email}. "
            f"Please approve {settings.site_url}/manage/{token}",
        )

    async def send_approval_notice(self, to_email: str, token: str) -> None:
        await self.send(
            settings.email_from,
            to_email,
            "Your Job Ad is live",
            "Your job ad has been approved and it is currently live. "
            "You can edit the ad at any time and check page views and clickouts "
            f"by following this link {settings.site_url}/edit/{token}",
        )

    async def send_upgrade_notice(self, to_email: str, tier_name: str, token: Optional[str]) -> None:
        manage = f" You can follow your ad at {settings.site_url}/edit/{token}" if token else ""
        await self.send(
            settings.email_from,
            to_email,
            "Your Job Ad has been upgraded",
            f"Thanks for your payment! Your job ad is now {tier_name}.{manage}",
        )

    async def send_apply_confirmation(
        self, to_email: str, job_title: str, company: str, location: str, slug: str, token: str
    ) -> None:
        await self.send(
            settings.email_from,
            to_email,
            f"Confirm your job application with {company}",
            f"Thanks for applying for the position {job_title} with {company} - {location} "
            f"({settings.site_url}/job/{slug}). Your application request, your email and "
            "your CV will expire in 72 hours and will be permanently deleted from the system. "
            f"Please confirm your application now by following this link "
            f"{settings.site_url}/apply/{token}",
        )

    async def forward_application(
        self, to_email: str, applicant_email: str, job_title: str, company: str,
        location: str, slug: str, cv: bytes
    ) -> None:
        await self.send(
            settings.email_from,
            to_email,
            "New Applicant",
            f"Hi, there is a new applicant for your position: {job_title} with {company} - "
            f"{location} ({settings.site_url}/job/{slug}). Applicant's Email: {applicant_email}. "
            "Please find applicant's CV attached below",
            attachment=cv,
        )


# Global email service instance
email_service = EmailService()


def get_email_service() -> EmailService:
    """FastAPI dependency; overridden in tests."""
    return email_service
