# carsite

A small Flask web site for browsing a catalogue of car models. It reads
models, manufacturers and categories from a JSON API, joins them, and lets
visitors:

- see a banner car on the front page, chosen from what they have searched for
  before (remembered in a base64-encoded JSON cookie named `searchData`);
- search by manufacturer and category (`/result`);
- compare several models side by side (`/comparison`);
- open the details of a single model (`/popup`);
- download a model's details as a plain-text attachment (`/download_txt`).

Static files are served under `/static/`. Any other path shows the front page.
All pages accept both GET and POST.

## Installing

```
pip install .
```

## The data API

The site expects an API that answers with JSON lists of objects at these
paths below its base URL:

- `api/models`
- `api/manufacturers`
- `api/categories`

By default the base URL is `http://localhost:3000/`. The three lists are
fetched concurrently on every page request. If the API cannot be reached,
answers with a status other than 200, or returns something other than a list
of objects, the page answers with status 500 and the text
"Sorry, something went wrong on our end. We're working to fix it!".

## Running

```
carsite
```

This starts the server on `0.0.0.0`, port 8080. Options:

- `--host` – interface to listen on (default `0.0.0.0`)
- `--port` – port to listen on (default `8080`)
- `--api-url` – base URL of the catalogue API
- `--templates` – directory holding the page templates (default: the current directory)
- `--static` – directory of static files (default: `static`)

## Templates

The pages are rendered with Jinja templates that you provide:

| Template             | Route         | Context                                      |
|----------------------|---------------|----------------------------------------------|
| `index.html`         | `/`           | `banner`, `manufacturers`, `categories`      |
| `search_result.html` | `/result`     | `cars`                                       |
| `comparison.html`    | `/comparison` | `cars`                                       |
| `popup.html`         | `/popup`      | `car`                                        |

`banner`, `car` and each item of `cars` are `carsite.apidata.ProcessedModel`
objects with the fields `id`, `name`, `manufacturer_name`,
`manufacturer_country`, `manufacturer_founding_year`, `category_name`, `year`,
`image` and `specifications` (`engine`, `horsepower`, `transmission`,
`drivetrain`).

The request fields read are `manufacturer` and `category` (`/result`),
`carmodelName`, repeatable (`/comparison`), `specifications` (`/popup`) and
`downloadtxt` (`/download_txt`).

## Using it from Python

```python
from carsite.app import create_app

app = create_app(
    base_url="http://localhost:3000/",
    template_folder="templates",
    static_folder="static",
)
app.run(port=8080)
```

The building blocks can be used on their own as well:

```python
from carsite.apidata import processed_api_data
from carsite.search import find_cars_info, car_text_report

models = processed_api_data("http://localhost:3000/")
for car in find_cars_info("BMW", "SUV", models):
    print(car_text_report(car))
```

- `carsite.apidata` – `processed_api_data`, `merge_models`, the `fetch_*`
  functions and `ApiError`.
- `carsite.search` – lists of manufacturers and categories, lookups by name,
  manufacturer and category, the banner choice, and the text report and its
  file name (`report_filename`).
- `carsite.cookies` – `SearchData` (search counts, `encode`),
  `decode_search_data`, `new_search_data` and `banner_from_search_data`.

## What it does not do

The package ships no page templates and no static assets; the site cannot
render its pages until you supply the four templates above. It does not
provide the catalogue API either and keeps no storage of its own: all data
comes from the API on each request, and search history lives only in the
visitor's cookie.

## Running the tests

```
pip install .[test]
pytest
```