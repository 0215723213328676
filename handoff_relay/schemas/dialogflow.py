from typing import Optional

from pydantic import BaseModel, ConfigDict


class FulfillmentIntent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    displayName: str
    isFallback: bool = False


class FulfillmentQueryResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    queryText: Optional[str] = None
    fulfillmentText: Optional[str] = None
    languageCode: str = "en"
    intent: FulfillmentIntent


class FulfillmentWebhookRequest(BaseModel):
    """Fulfillment call made by the NLU service once it has matched an intent."""

    model_config = ConfigDict(extra="ignore")

    responseId: Optional[str] = None
    session: Optional[str] = None
    queryResult: FulfillmentQueryResult


class FulfillmentWebhookResponse(BaseModel):
    fulfillmentText: str
