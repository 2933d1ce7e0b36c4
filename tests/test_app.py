import pytest

from shelfreader.app import create_app
from shelfreader.config import ReaderConfig

from .conftest import FakeCatalog, FakeFunctions

BOOK = {"id": "dune-1", "title": "Dune", "authors": ["Frank Herbert"], "previewLink": "https://books.example/dune"}


@pytest.fixture
def fakes():
    return FakeCatalog(volume={"volumeInfo": {"description": "y" * 4500}}), FakeFunctions()


@pytest.fixture
def client(fakes):
    catalog, functions = fakes
    app = create_app(ReaderConfig(), catalog=catalog, functions=functions)
    app.testing = True
    return app.test_client()


def open_reader(client):
    resp = client.post("/api/readers", json={"book": BOOK, "backUrl": "/library"})
    assert resp.status_code == 201
    return resp.get_json()


def test_index_page(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert b"volume" in resp.data


def test_index_redirects_to_reader(client):
    resp = client.get("/?volume=abc")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/read/abc")


def test_read_page_renders(client):
    resp = client.get("/read/dune-1?title=Dune&author=Frank+Herbert")
    assert resp.status_code == 200
    assert b"Dune" in resp.data
    assert b"handleTextSelection" in resp.data


def test_create_reader(client):
    state = open_reader(client)
    assert state["pageCount"] == 3
    assert state["page"] == 0
    assert state["language"] == "ORIGINAL"
    assert len(state["chat"]["messages"]) == 1


def test_create_reader_rejects_bad_book(client):
    resp = client.post("/api/readers", json={"book": {"title": "No id"}})
    assert resp.status_code == 400
    assert "error" in resp.get_json()


@pytest.mark.parametrize("authors", [5, True, {"name": "Frank Herbert"}, ["Frank Herbert", 7]])
def test_create_reader_rejects_non_list_authors(client, authors):
    resp = client.post("/api/readers", json={"id": "x", "title": "Dune", "authors": authors})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "'authors' must be a list"


def test_unknown_reader_is_404(client):
    resp = client.get("/api/readers/missing")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "Reader not found"


def test_page_navigation(client):
    rid = open_reader(client)["readerId"]
    state = client.post(f"/api/readers/{rid}/page", json={"delta": 1}).get_json()
    assert state["page"] == 1
    state = client.post(f"/api/readers/{rid}/page", json={"page": 99}).get_json()
    assert state["page"] == 2
    assert client.post(f"/api/readers/{rid}/page", json={"page": "x"}).status_code == 400


def test_language_selection(client, fakes):
    rid = open_reader(client)["readerId"]
    state = client.post(f"/api/readers/{rid}/language", json={"language": "hi"}).get_json()
    assert state["applied"] is True
    assert state["translationMode"] == "translated"
    assert state["text"].startswith("[hi] ")
    assert state["notices"][-1]["title"] == "Translation complete"
    state = client.post(f"/api/readers/{rid}/language", json={"language": "ORIGINAL"}).get_json()
    assert not state["text"].startswith("[hi] ")
    resp = client.post(f"/api/readers/{rid}/language", json={"language": "xx"})
    assert resp.status_code == 400


def test_selection_and_chat(client, fakes):
    _, functions = fakes
    rid = open_reader(client)["readerId"]
    state = client.post(f"/api/readers/{rid}/selection", json={"text": "the spice must flow"}).get_json()
    assert state["opened"] is True
    assert state["showChat"] is True
    draft = state["chat"]["draft"]
    assert draft == 'Explain this passage: "the spice must flow"'

    state = client.post(f"/api/readers/{rid}/chat", json={"message": draft}).get_json()
    assert state["sent"] is True
    assert [m["role"] for m in state["chat"]["messages"]] == ["assistant", "user", "assistant"]
    assert functions.chat_calls[0][2] == "the spice must flow"


def test_blank_chat_message_rejected(client):
    rid = open_reader(client)["readerId"]
    assert client.post(f"/api/readers/{rid}/chat", json={"message": "  "}).status_code == 400


def test_chat_failure_reported(client, fakes):
    _, functions = fakes
    functions.fail_chat = True
    rid = open_reader(client)["readerId"]
    state = client.post(f"/api/readers/{rid}/chat", json={"message": "hello"}).get_json()
    assert state["sent"] is False
    assert state["chat"]["messages"][-1] == {"role": "user", "content": "hello"}
    assert state["notices"][-1]["variant"] == "destructive"


def test_dismiss_notice(client, fakes):
    _, functions = fakes
    functions.fail_translate = True
    rid = open_reader(client)["readerId"]
    state = client.post(f"/api/readers/{rid}/language", json={"language": "fr"}).get_json()
    notice_id = state["notices"][-1]["id"]
    state = client.delete(f"/api/readers/{rid}/notices/{notice_id}").get_json()
    assert state["notices"] == []
    assert client.delete(f"/api/readers/{rid}/notices/{notice_id}").status_code == 404


def test_toggle_chat(client):
    rid = open_reader(client)["readerId"]
    assert client.post(f"/api/readers/{rid}/chat/toggle", json={}).get_json()["showChat"] is True
    assert client.post(f"/api/readers/{rid}/chat/toggle", json={"show": False}).get_json()["showChat"] is False


def test_back_closes_reader(client):
    rid = open_reader(client)["readerId"]
    resp = client.post(f"/api/readers/{rid}/back")
    assert resp.get_json() == {"closed": True, "backUrl": "/library"}
    assert client.get(f"/api/readers/{rid}").status_code == 404


def test_oldest_reader_evicted_past_cap(fakes):
    catalog, functions = fakes
    app = create_app(ReaderConfig(max_readers=3), catalog=catalog, functions=functions)
    client = app.test_client()
    ids = [open_reader(client)["readerId"] for _ in range(3)]
    # touching the first reader makes the second the least recently used
    assert client.get(f"/api/readers/{ids[0]}").status_code == 200
    ids.append(open_reader(client)["readerId"])
    for _ in range(50):
        client.get("/read/vol1?title=Dune")

    assert len(app.extensions["shelfreader"]) == 3
    assert client.get(f"/api/readers/{ids[1]}").status_code == 404


def test_recently_used_reader_survives_eviction(fakes):
    catalog, functions = fakes
    app = create_app(ReaderConfig(max_readers=2), catalog=catalog, functions=functions)
    client = app.test_client()
    first = open_reader(client)["readerId"]
    second = open_reader(client)["readerId"]
    client.get(f"/api/readers/{first}")
    third = open_reader(client)["readerId"]

    assert list(app.extensions["shelfreader"]) == [first, third]
    assert client.get(f"/api/readers/{second}").status_code == 404
    assert client.get(f"/api/readers/{first}").status_code == 200
