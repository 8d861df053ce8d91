"""The car catalogue web site: routes, cookie bookkeeping and the server entry point."""

from __future__ import annotations

import argparse
import logging
import os
import random
from collections.abc import Callable, Sequence
from datetime import datetime, timezone

from flask import Flask, Response, make_response, render_template, request

from carsite.apidata import API_URL, ApiError, ProcessedModel, processed_api_data
from carsite.cookies import (
    COOKIE_NAME,
    SearchData,
    banner_from_search_data,
    decode_search_data,
    new_search_data,
)
from carsite.search import (
    car_text_report,
    find_car_by_name,
    find_cars_by_names,
    find_cars_info,
    find_category_list,
    find_manufacturer_list,
    report_filename,
)

logger = logging.getLogger(__name__)

FAILURE_MESSAGE = "Sorry, something went wrong on our end. We're working to fix it!"
_EXPIRED = datetime(2019, 6, 5, 11, 35, 4, tzinfo=timezone.utc)
_METHODS = ["GET", "POST"]


def _failure() -> Response:
    return Response(FAILURE_MESSAGE + "\n", status=500, content_type="text/plain; charset=utf-8")


def _set_history(response: Response, data: SearchData) -> None:
    response.set_cookie(COOKIE_NAME, data.encode(), path="/")


def _expire_history(response: Response) -> None:
    response.set_cookie(COOKIE_NAME, "", expires=_EXPIRED)


def _is_http_error(exc: Exception) -> bool:
    """True for the framework's own HTTP errors (404, 405 and the like)."""
    return isinstance(getattr(exc, "code", None), int) and callable(
        getattr(exc, "get_response", None)
    )


def create_app(
    base_url: str = API_URL,
    template_folder: str = ".",
    static_folder: str = "static",
) -> Flask:
    """Build the web application backed by the catalogue API at base_url."""
    app = Flask(
        __name__,
        template_folder=os.path.abspath(template_folder),
        static_folder=os.path.abspath(static_folder),
        static_url_path="/static",
    )
    app.config["API_URL"] = base_url
    app.config.setdefault("RNG", None)

    def rng() -> random.Random | None:
        return app.config.get("RNG")

    def load_models() -> list[ProcessedModel]:
        return processed_api_data(app.config["API_URL"])

    def update_history(
        response: Response,
        models: Sequence[ProcessedModel],
        record: Callable[[SearchData], None],
    ) -> None:
        raw = request.cookies.get(COOKIE_NAME)
        try:
            data = decode_search_data(raw) if raw is not None else new_search_data(models, rng())
        except ValueError as exc:
            logger.error("Error processing cookie data: %s", exc)
            _expire_history(response)
            return
        record(data)
        _set_history(response, data)

    @app.errorhandler(ApiError)
    def _api_failure(exc: ApiError) -> Response:
        logger.error("Error fetching data: %s", exc)
        return _failure()

    @app.errorhandler(Exception)
    def _recover(exc: Exception):
        if _is_http_error(exc):
            return exc
        logger.error("Recovered from an error in HTTP handler: %s", exc)
        return _failure()

    def index(path: str = "") -> Response:
        models = load_models()
        manufacturers = find_manufacturer_list(models)
        categories = find_category_list(models)
        raw = request.cookies.get(COOKIE_NAME)
        chooser = rng() or random
        banner: ProcessedModel | None
        new_history: SearchData | None = None
        expire = False
        if raw is None:
            new_history = new_search_data(models, rng())
            banner = models[chooser.randrange(10)]
        else:
            try:
                banner = banner_from_search_data(decode_search_data(raw), models, rng())
            except ValueError as exc:
                logger.error("Error parsing data: %s", exc)
                banner = None
                expire = True
                new_history = new_search_data(models, rng())
        response = make_response(
            render_template(
                "index.html",
                banner=banner or ProcessedModel(),
                manufacturers=manufacturers,
                categories=categories,
            )
        )
        if expire:
            _expire_history(response)
        if new_history is not None:
            _set_history(response, new_history)
        return response

    def result() -> Response:
        manufacturer = request.values.get("manufacturer", "")
        category = request.values.get("category", "")
        models = load_models()
        cars = find_cars_info(manufacturer, category, models)
        response = make_response(render_template("search_result.html", cars=cars))

        def record(data: SearchData) -> None:
            data.record_manufacturer(manufacturer, skip_placeholder=True)
            data.record_category(category, skip_placeholder=True)

        update_history(response, models, record)
        return response

    def comparison() -> Response:
        names = request.values.getlist("carmodelName")
        models = load_models()
        cars = find_cars_by_names(names, models)
        response = make_response(render_template("comparison.html", cars=cars))

        def record(data: SearchData) -> None:
            for car in cars:
                data.record_manufacturer(car.manufacturer_name)
            for car in cars:
                data.record_category(car.category_name)

        update_history(response, models, record)
        return response

    def popup() -> Response:
        name = request.values.get("specifications", "")
        models = load_models()
        car = find_car_by_name(name, models) or ProcessedModel()
        response = make_response(render_template("popup.html", car=car))

        def record(data: SearchData) -> None:
            data.record_manufacturer(car.manufacturer_name, skip_placeholder=True)
            data.record_category(car.category_name, skip_placeholder=True)

        update_history(response, models, record)
        return response

    def download_txt() -> Response:
        name = request.values.get("downloadtxt", "")
        car = find_car_by_name(name, load_models()) or ProcessedModel()
        return Response(
            car_text_report(car),
            content_type="text/plain",
            headers={"Content-Disposition": f"attachment; filename={report_filename(car)}"},
        )

    app.add_url_rule("/", "index", index, methods=_METHODS)
    app.add_url_rule("/<path:path>", "index_any", index, methods=_METHODS)
    app.add_url_rule("/result", "result", result, methods=_METHODS)
    app.add_url_rule("/comparison", "comparison", comparison, methods=_METHODS)
    app.add_url_rule("/popup", "popup", popup, methods=_METHODS)
    app.add_url_rule("/download_txt", "download_txt", download_txt, methods=_METHODS)
    return app


def main(argv: Sequence[str] | None = None) -> int:
    """Run the web server."""
    parser = argparse.ArgumentParser(description="Serve the car catalogue web site.")
    parser.add_argument("--host", default="0.0.0.0", help="interface to listen on")
    parser.add_argument("--port", type=int, default=8080, help="port to listen on")
    parser.add_argument("--api-url", default=API_URL, help="base URL of the catalogue API")
    parser.add_argument("--templates", default=".", help="directory holding the page templates")
    parser.add_argument("--static", default="static", help="directory of static files")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    app = create_app(args.api_url, args.templates, args.static)
    logger.info("Starting server on port %d...", args.port)
    app.run(host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())