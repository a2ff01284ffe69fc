"""
Tests for Books API Endpoints

This module tests the CRUD operations under /livros.

TEST NAMING CONVENTION:
- test_<action>_<scenario>
- Examples: test_create_book_success, test_get_book_not_found

Each test should:
- Test one thing (single assertion concept)
- Be independent (no reliance on other tests)
- Be descriptive (name explains what's tested)
"""

import pytest
from fastapi import status

from library_catalog.services.cache import get_cache, rating_summary_key


class TestListBooks:
    """Tests for GET /livros."""

    def test_list_books_empty(self, client):
        response = client.get("/livros")

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["data"] == []
        assert body["pagination"] == {"page": 1, "pageSize": 10, "total": 0, "totalPages": 1}

    def test_list_books_with_data(self, client, sample_book):
        response = client.get("/livros")

        body = response.json()
        assert body["pagination"]["total"] == 1
        assert body["data"][0]["titulo"] == "Clean Code"
        assert body["data"][0]["ai_summary"] is None

    def test_list_books_pagination(self, client, multiple_books):
        response = client.get("/livros?page=2&pageSize=5")

        body = response.json()
        assert len(body["data"]) == 5
        assert body["pagination"] == {"page": 2, "pageSize": 5, "total": 15, "totalPages": 3}

    def test_list_books_clamps_pagination(self, client, multiple_books):
        response = client.get("/livros?page=0&pageSize=500")

        assert response.status_code == status.HTTP_200_OK
        pagination = response.json()["pagination"]
        assert pagination["page"] == 1
        assert pagination["pageSize"] == 50

    def test_list_books_search(self, client, multiple_books):
        response = client.get("/livros?q=book 1")

        titles = {book["titulo"] for book in response.json()["data"]}
        assert "Test Book 1" in titles
        assert "Test Book 12" in titles
        assert "Test Book 2" not in titles

    def test_list_books_filter_by_publisher(self, client, multiple_books):
        response = client.get("/livros?editora=addison&pageSize=50")

        body = response.json()
        assert body["pagination"]["total"] == 5
        assert all(book["editora"] == "Addison-Wesley" for book in body["data"])

    def test_list_books_filter_by_isbn(self, client, multiple_books):
        response = client.get("/livros?isbn=isbn-004")

        data = response.json()["data"]
        assert len(data) == 1
        assert data[0]["titulo"] == "Test Book 5"

    def test_list_books_sort_ascending(self, client, multiple_books):
        response = client.get("/livros?sort=num_paginas&order=asc&pageSize=3")

        pages = [book["num_paginas"] for book in response.json()["data"]]
        assert pages == [100, 110, 120]

    def test_list_books_unknown_sort_falls_back(self, client, multiple_books):
        response = client.get("/livros?sort=drop_table")

        assert response.status_code == status.HTTP_200_OK
        assert len(response.json()["data"]) == 10

    def test_list_books_non_integer_page_falls_back(self, client, multiple_books):
        response = client.get("/livros?page=abc&pageSize=")

        assert response.status_code == status.HTTP_200_OK
        pagination = response.json()["pagination"]
        assert pagination["page"] == 1
        assert pagination["pageSize"] == 10


class TestGetBook:
    """Tests for GET /livros/{book_id}."""

    def test_get_book_success(self, client, sample_book):
        response = client.get(f"/livros/{sample_book.id}")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["id"] == sample_book.id
        assert data["isbn"] == "978-0132350884"

    def test_get_book_not_found(self, client):
        response = client.get("/livros/99999")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"error": {"message": "Book not found"}}


class TestCreateBook:
    """Tests for POST /livros."""

    payload = {
        "titulo": "Refactoring",
        "num_paginas": 448,
        "isbn": "978-0134757599",
        "editora": "Addison-Wesley",
    }

    def test_create_book_success(self, client, auth_headers):
        response = client.post("/livros", json=self.payload, headers=auth_headers)

        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body["message"] == "Book created"
        assert body["data"]["titulo"] == "Refactoring"
        assert "id" in body["data"]

    def test_create_book_strips_whitespace(self, client, auth_headers):
        payload = {**self.payload, "titulo": "  Refactoring  "}

        response = client.post("/livros", json=payload, headers=auth_headers)

        assert response.json()["data"]["titulo"] == "Refactoring"

    def test_create_book_with_jwt(self, client, jwt_headers):
        response = client.post("/livros", json=self.payload, headers=jwt_headers("maria"))

        assert response.status_code == status.HTTP_201_CREATED

    def test_create_book_duplicate_isbn(self, client, auth_headers, sample_book):
        payload = {**self.payload, "isbn": sample_book.isbn}

        response = client.post("/livros", json=payload, headers=auth_headers)

        assert response.status_code == status.HTTP_409_CONFLICT
        assert "duplicate ISBN" in response.json()["error"]["message"]

    @pytest.mark.parametrize(
        "changes",
        [
            {"titulo": ""},
            {"titulo": "   "},
            {"num_paginas": 0},
            {"num_paginas": "many"},
            {"isbn": None},
            {"editora": "x" * 256},
        ],
    )
    def test_create_book_invalid_payload(self, client, auth_headers, changes):
        response = client.post("/livros", json={**self.payload, **changes}, headers=auth_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["message"]

    def test_create_book_missing_token(self, client):
        response = client.post("/livros", json=self.payload)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {"error": {"message": "Missing token"}}
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_create_book_invalid_token(self, client):
        response = client.post("/livros", json=self.payload, headers={"Authorization": "Bearer nope"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {"error": {"message": "Invalid token"}}


class TestUpdateBook:
    """Tests for PUT /livros/{book_id}."""

    def test_update_book_partial(self, client, auth_headers, sample_book):
        response = client.put(
            f"/livros/{sample_book.id}",
            json={"num_paginas": 500},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["message"] == "Book updated"
        assert body["data"]["num_paginas"] == 500
        assert body["data"]["titulo"] == "Clean Code"

    def test_update_book_no_fields(self, client, auth_headers, sample_book):
        response = client.put(f"/livros/{sample_book.id}", json={}, headers=auth_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["message"] == "No fields to update"

    def test_update_book_not_found(self, client, auth_headers):
        response = client.put("/livros/99999", json={"titulo": "X"}, headers=auth_headers)

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_update_book_isbn_conflict(self, client, auth_headers, multiple_books):
        first, second = multiple_books[:2]

        response = client.put(
            f"/livros/{first.id}",
            json={"isbn": second.isbn},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_update_book_requires_auth(self, client, sample_book):
        response = client.put(f"/livros/{sample_book.id}", json={"titulo": "X"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestDeleteBook:
    """Tests for DELETE /livros/{book_id}."""

    def test_delete_book_success(self, client, auth_headers, sample_book):
        response = client.delete(f"/livros/{sample_book.id}", headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"message": "Book deleted"}
        assert client.get(f"/livros/{sample_book.id}").status_code == status.HTTP_404_NOT_FOUND

    def test_delete_book_drops_cached_summary(self, client, auth_headers, sample_book):
        get_cache().set(rating_summary_key(sample_book.id), {"avg": 5.0, "total": 1, "counts": {}})

        client.delete(f"/livros/{sample_book.id}", headers=auth_headers)

        assert get_cache().get(rating_summary_key(sample_book.id)) is None

    def test_delete_book_removes_ratings(self, client, auth_headers, sample_book, add_rating):
        add_rating(sample_book.id, 5, user_id=1)

        client.delete(f"/livros/{sample_book.id}", headers=auth_headers)

        # Test mode serves unknown books as stubs; the old rows must be gone
        response = client.get(f"/api/books/{sample_book.id}/ratings/summary")
        assert response.json()["data"]["total"] == 0

    def test_delete_book_not_found(self, client, auth_headers):
        response = client.delete("/livros/99999", headers=auth_headers)

        assert response.status_code == status.HTTP_404_NOT_FOUND
