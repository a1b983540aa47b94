import logging

from daansetu.schemas import ContactIn, ContactMessage
from daansetu.services.documents import parse, utcnow
from daansetu.services.notifications import notify

logger = logging.getLogger(__name__)

COLLECTION = "contactMessages"


async def submit_contact_form(repo, data: ContactIn) -> ContactMessage:
    saved = parse(ContactMessage, await repo.insert(COLLECTION, {
        **data.model_dump(),
        "status": "new",
        "created_at": utcnow(),
    }))
    logger.info("contact message %s from %s", saved.id, saved.email)
    await notify(
        repo, "messageReceived",
        title="New Contact Message",
        message=f"New contact message from {saved.name}: {saved.subject or 'No subject'}",
        target_user_role="admin",
        metadata={
            "contactMessageId": saved.id,
            "senderName": saved.name,
            "senderEmail": saved.email,
            "userType": saved.user_type,
        },
    )
    return saved
