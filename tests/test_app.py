import json
import random
import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from carsite.apidata import processed_api_data
from carsite.app import FAILURE_MESSAGE, create_app, main
from carsite.cookies import COOKIE_NAME, SearchData, decode_search_data
from carsite.search import car_text_report, find_car_by_name, find_cars_info, report_filename

MANUFACTURERS = [
    {"id": 1, "name": "Alpha", "country": "Nowhere", "foundingYear": 1950},
    {"id": 2, "name": "Beta", "country": "Elsewhere", "foundingYear": 1970},
]
CATEGORIES = [
    {"id": 1, "name": "Sedan"},
    {"id": 2, "name": "SUV"},
    {"id": 3, "name": "Coupe"},
]
MODELS = [
    {
        "id": i,
        "name": f"Car {i}",
        "manufacturerId": 1 if i % 2 else 2,
        "categoryId": i % 3 + 1,
        "year": 2000 + i,
        "specifications": {
            "engine": f"V{i}",
            "horsepower": 100 + i,
            "transmission": "Manual",
            "drivetrain": "Rear-wheel drive",
        },
        "image": f"car{i}.jpg",
    }
    for i in range(1, 11)
]

TEMPLATES = {
    "index.html": "BANNER={{ banner.name }}|M={{ manufacturers|join(',') }}|C={{ categories|join(',') }}",
    "search_result.html": "{% for car in cars %}{{ car.name }};{% endfor %}",
    "comparison.html": "{% for car in cars %}{{ car.name }};{% endfor %}",
    "popup.html": "{{ car.name }}|{{ car.manufacturer_name }}",
}


@pytest.fixture(scope="module")
def api_url():
    payloads = {
        "/api/models": MODELS,
        "/api/manufacturers": MANUFACTURERS,
        "/api/categories": CATEGORIES,
    }

    class Handler(BaseHTTPRequestHandler):
        def do_GET(self):
            body = payloads.get(self.path)
            if body is None:
                self.send_response(404)
                self.end_headers()
                return
            data = json.dumps(body).encode()
            self.send_response(200)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(data)))
            self.end_headers()
            self.wfile.write(data)

        def log_message(self, *args):
            pass

    server = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_port}/"
    server.shutdown()
    server.server_close()


def _make_app(base_url, tmp_path, templates=TEMPLATES):
    template_dir = tmp_path / "templates"
    template_dir.mkdir(exist_ok=True)
    for name, text in templates.items():
        (template_dir / name).write_text(text)
    static_dir = tmp_path / "static"
    static_dir.mkdir(exist_ok=True)
    app = create_app(base_url, str(template_dir), str(static_dir))
    app.config["TESTING"] = True
    app.config["RNG"] = random.Random(0)
    return app


@pytest.fixture
def client(api_url, tmp_path):
    return _make_app(api_url, tmp_path).test_client()


def _history_values(response):
    values = []
    for header in response.headers.getlist("Set-Cookie"):
        name, _, rest = header.partition("=")
        if name == COOKIE_NAME:
            values.append(rest.split(";", 1)[0].strip('"'))
    return values


def _cookie_header(data):
    return {"Cookie": f"{COOKIE_NAME}={data.encode()}"}


def test_index_without_cookie_sets_new_history(client):
    response = client.get("/")
    assert response.status_code == 200
    text = response.get_data(as_text=True)
    banner, manufacturers, categories = text.split("|")
    assert banner.removeprefix("BANNER=") in {m["name"] for m in MODELS}
    assert manufacturers == "M=Alpha,Beta"
    assert categories == "C=Coupe,SUV,Sedan"
    values = _history_values(response)
    assert len(values) == 1
    data = decode_search_data(values[0])
    assert list(data.manufacturer.values()) == [1]
    assert set(data.manufacturer) <= {"Alpha", "Beta"}
    assert list(data.category.values()) == [1]


def test_index_banner_follows_history(client):
    history = SearchData(manufacturer={"Beta": 5}, category={"Sedan": 1})
    response = client.get("/", headers=_cookie_header(history))
    assert response.status_code == 200
    assert response.get_data(as_text=True).startswith("BANNER=Car 2|")
    assert _history_values(response) == []


def test_index_bad_cookie_expires_and_replaces(client):
    response = client.get("/", headers={"Cookie": f"{COOKIE_NAME}=notbase64!!"})
    assert response.status_code == 200
    assert response.get_data(as_text=True).startswith("BANNER=|")
    headers = [h for h in response.headers.getlist("Set-Cookie") if h.startswith(COOKIE_NAME)]
    assert len(headers) == 2
    assert "2019" in headers[0]
    fresh = decode_search_data(_history_values(response)[1])
    assert list(fresh.category.values()) == [1]


def test_unknown_path_serves_index(client):
    response = client.get("/anything/here")
    assert response.status_code == 200
    assert response.get_data(as_text=True).startswith("BANNER=")


def test_result_lists_matches_and_counts_search(client, api_url):
    history = SearchData(manufacturer={"Alpha": 2}, category={"Sedan": 1})
    response = client.get(
        "/result?manufacturer=Alpha&category=Sedan", headers=_cookie_header(history)
    )
    assert response.status_code == 200
    expected = find_cars_info("Alpha", "Sedan", processed_api_data(api_url))
    assert response.get_data(as_text=True) == "".join(f"{c.name};" for c in expected)
    data = decode_search_data(_history_values(response)[0])
    assert data.manufacturer == {"Alpha": 3}
    assert data.category == {"Sedan": 2}


def test_result_skips_placeholder(client):
    history = SearchData(manufacturer={"Alpha": 1}, category={"Sedan": 1})
    response = client.post(
        "/result", data={"manufacturer": "empty", "category": "Sedan"},
        headers=_cookie_header(history),
    )
    data = decode_search_data(_history_values(response)[0])
    assert data.manufacturer == {"Alpha": 1}
    assert data.category == {"Sedan": 2}


def test_result_bad_cookie_is_expired(client):
    response = client.get(
        "/result?manufacturer=Alpha&category=Sedan",
        headers={"Cookie": f"{COOKIE_NAME}=e30="},  # "{}" is valid, so corrupt it below
    )
    assert response.status_code == 200
    bad = client.get(
        "/result?manufacturer=Alpha&category=Sedan",
        headers={"Cookie": f"{COOKIE_NAME}=W10="},
    )
    assert bad.status_code == 200
    headers = [h for h in bad.headers.getlist("Set-Cookie") if h.startswith(COOKIE_NAME)]
    assert len(headers) == 1
    assert "2019" in headers[0]
    assert decode_search_data(_history_values(response)[0]).manufacturer == {"Alpha": 1}


def test_comparison_counts_each_car(client):
    history = SearchData(manufacturer={"Alpha": 1}, category={"Sedan": 1})
    response = client.get(
        "/comparison?carmodelName=Car 1&carmodelName=Car 4", headers=_cookie_header(history)
    )
    assert response.status_code == 200
    assert response.get_data(as_text=True) == "Car 1;Car 4;"
    data = decode_search_data(_history_values(response)[0])
    assert data.manufacturer == {"Alpha": 2, "Beta": 1}
    assert data.category == {"Sedan": 1, "SUV": 2}


def test_popup_shows_car_and_counts(client):
    history = SearchData(manufacturer={"Beta": 1}, category={"Coupe": 1})
    response = client.get("/popup?specifications=Car 2", headers=_cookie_header(history))
    assert response.status_code == 200
    assert response.get_data(as_text=True) == "Car 2|Beta"
    data = decode_search_data(_history_values(response)[0])
    assert data.manufacturer == {"Beta": 2}
    assert data.category == {"Coupe": 2}


def test_download_txt_returns_report(client, api_url):
    response = client.get("/download_txt?downloadtxt=Car 3")
    assert response.status_code == 200
    car = find_car_by_name("Car 3", processed_api_data(api_url))
    assert response.get_data(as_text=True) == car_text_report(car)
    assert response.headers["Content-Type"] == "text/plain"
    assert response.headers["Content-Disposition"] == f"attachment; filename={report_filename(car)}"


def test_unreachable_api_gives_friendly_error(tmp_path):
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    client = _make_app(f"http://127.0.0.1:{port}/", tmp_path).test_client()
    for path in ("/", "/result", "/comparison", "/popup", "/download_txt"):
        response = client.get(path)
        assert response.status_code == 500
        assert response.get_data(as_text=True).strip() == FAILURE_MESSAGE


def test_missing_template_is_recovered(api_url, tmp_path):
    client = _make_app(api_url, tmp_path, templates={}).test_client()
    response = client.get("/popup?specifications=Car 1")
    assert response.status_code == 500
    assert response.get_data(as_text=True).strip() == FAILURE_MESSAGE


def test_static_files_are_served(api_url, tmp_path):
    app = _make_app(api_url, tmp_path)
    (tmp_path / "static" / "style.css").write_text("body{}")
    response = app.test_client().get("/static/style.css")
    assert response.status_code == 200
    assert response.get_data(as_text=True) == "body{}"
    response.close()


def test_main_help_exits_cleanly(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--help"])
    assert excinfo.value.code == 0
    assert "--api-url" in capsys.readouterr().out