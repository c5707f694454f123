from __future__ import annotations

from fastapi import APIRouter, Depends

from earlab.api.dependencies import ContactServiceDep
from earlab.core.rate_limit import RateLimitPresets, limit_requests
from earlab.schemas.contact import ContactData, ContactRequestBody, ContactResponse
from earlab.services.contact_service import ContactRequest

router = APIRouter(tags=["Contact"])


@router.post(
    "/contact",
    response_model=ContactResponse,
    dependencies=[Depends(limit_requests(RateLimitPresets.FORM))],
)
async def submit_contact(body: ContactRequestBody, service: ContactServiceDep) -> ContactResponse:
    """Submit the public contact form.

    Stores the submission, notifies the lab inbox and acknowledges the sender.
    """
    result = await service.submit(
        ContactRequest(
            name=body.name,
            email=str(body.email),
            project_description=body.project_description,
            company=body.company,
            budget_range=body.budget_range,
            timeline=body.timeline,
            file_url=str(body.file_url) if body.file_url else None,
        )
    )
    return ContactResponse(message=result.message, data=ContactData(contact_id=result.contact_id))
