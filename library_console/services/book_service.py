from typing import List

from library_console.models import Book, BookDetails, BookDraft, RetireRequest, RetireResult
from library_console.services.http_client import ApiClient, parse_response


class BookService:
    """Catalog endpoints of the library API."""

    def __init__(self, api: ApiClient) -> None:
        self.api = api

    async def list(self) -> List[Book]:
        return parse_response(List[Book], await self.api.get("/books") or [])

    async def get_by_id(self, book_id: int) -> Book:
        return parse_response(Book, await self.api.get(f"/books/{book_id}"))

    async def get_details(self, book_id: int) -> BookDetails:
        return parse_response(BookDetails, await self.api.get(f"/books/{book_id}/details"))

    async def create(self, draft: BookDraft) -> Book:
        return parse_response(Book, await self.api.post("/books", json=draft.to_payload()))

    async def update(self, book_id: int, draft: BookDraft) -> Book:
        return parse_response(Book, await self.api.put(f"/books/{book_id}", json=draft.to_payload()))

    async def delete(self, book_id: int) -> None:
        await self.api.delete(f"/books/{book_id}")

    async def retire(self, book_id: int, request: RetireRequest) -> RetireResult:
        data = await self.api.post(f"/books/{book_id}/darbaja", json=request.to_payload())
        return parse_response(RetireResult, data or {})
