from tipjar_common.utils.json_model import JsonModel
from tipjar_db.models.enums import KycStatus


class KycStatusUpdate(JsonModel):
    status: KycStatus
    reference: str | None = None
