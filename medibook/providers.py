"""Provider directory with demo fallback."""
from typing import List, Optional

from pydantic import ValidationError

from medibook import config
from medibook.http_client import MedibookError
from medibook.logging_config import get_logger
from medibook.models import Provider, Speciality

logger = get_logger(__name__)

DEMO_FALLBACK_WARNING = "Showing demo doctors. Real doctors could not be loaded."


def demo_providers() -> List[Provider]:
    return [Provider.from_demo(doc, index) for index, doc in enumerate(config.DEMO_DOCTORS)]


class ProviderDirectory:
    """
    All bookable providers, real ones first.

    When the provider list cannot be fetched the directory degrades to the
    demo roster and sets `warning`, rather than leaving the list empty.
    """

    def __init__(self, api):
        self.api = api
        self.providers: List[Provider] = []
        self.warning = ""

    def refresh(self) -> List[Provider]:
        self.warning = ""
        try:
            response = self.api.providers()
        except MedibookError as e:
            logger.warning("providers_fetch_failed", error=str(e))
            self.providers = demo_providers()
            self.warning = DEMO_FALLBACK_WARNING
            return self.providers

        real = []
        for payload in response.get("providers") or []:
            try:
                real.append(Provider.from_api(payload))
            except (ValidationError, KeyError) as e:
                logger.warning("provider_record_skipped", provider=payload.get("id"), error=str(e))

        self.providers = real + demo_providers()
        logger.info("providers_loaded", real=len(real), total=len(self.providers))
        return self.providers

    def get(self, provider_id: str) -> Optional[Provider]:
        return next((p for p in self.providers if p.id == provider_id), None)

    def by_speciality(self, speciality: Optional[str] = None) -> List[Provider]:
        """Filter by speciality; None returns everyone."""
        if not speciality:
            return list(self.providers)
        try:
            wanted = Speciality(speciality)
        except ValueError:
            return []
        return [p for p in self.providers if p.speciality == wanted]

    def related(self, provider: Provider) -> List[Provider]:
        """Other providers with the same speciality."""
        return [
            p for p in self.providers
            if p.speciality == provider.speciality and p.id != provider.id
        ]
