from typing import List

from library_console.models import Loan, LoanDraft, LoanStatus
from library_console.services.http_client import ApiClient, parse_response


class LoanService:
    """Loan endpoints of the library API."""

    def __init__(self, api: ApiClient) -> None:
        self.api = api

    async def list(self) -> List[Loan]:
        return parse_response(List[Loan], await self.api.get("/loans") or [])

    async def get_by_id(self, loan_id: int) -> Loan:
        return parse_response(Loan, await self.api.get(f"/loans/{loan_id}"))

    async def list_by_status(self, status: str = LoanStatus.ACTIVE.value) -> List[Loan]:
        return parse_response(List[Loan], await self.api.get(f"/loans/status/{status}") or [])

    async def create(self, draft: LoanDraft) -> Loan:
        return parse_response(Loan, await self.api.post("/loans", json=draft.to_payload()))

    async def return_loan(self, loan_id: int) -> Loan:
        # Status transition; the endpoint takes no body
        return parse_response(Loan, await self.api.post(f"/loans/{loan_id}/return"))
