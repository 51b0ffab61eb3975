from __future__ import annotations

from dataclasses import dataclass

from ..interfaces import Identity


@dataclass(frozen=True, slots=True)
class EmailMessage:
    subject: str
    body: str


def request_received(*, requester: Identity, site_name: str) -> EmailMessage:
    """Sent to the network administrator when a request is submitted."""

    return EmailMessage(
        subject="New site request pending approval",
        body=(
            "A new user has requested a site:\n\n"
            f"Username: {requester.login}\n"
            f"Email: {requester.email}\n"
            f"Requested site: {site_name}\n\n"
            "Review requests in Network Admin > Site Requests."
        ),
    )


def request_approved(*, requester: Identity, site_url: str) -> EmailMessage:
    return EmailMessage(
        subject="Your site has been approved",
        body=(
            f"Hi {requester.login},\n\n"
            "Your site request has been approved.\n\n"
            f"You can access your site here:\n{site_url}\n\n"
            "You can log in with your existing account."
        ),
    )


def request_rejected(*, requester: Identity) -> EmailMessage:
    return EmailMessage(
        subject="Your site request was not approved",
        body=(
            f"Hi {requester.login},\n\n"
            "We're sorry, but your site request was not approved.\n\n"
            "If you believe this is an error, please contact the administrator."
        ),
    )
