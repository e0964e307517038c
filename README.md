# gestor

Building blocks for an HTTP API that manages the cell groups (*células*) of a
church: the cells themselves, their members, the meetings (*encontros*) they
hold and who attended them, plus the church's networks (*redes*) and
supervisors (*supervisores*).

The package provides:

- `gestor.models`: the SQLAlchemy record types, `bind_json` to build a record
  from a JSON body and `to_json` to render records as JSON-ready data;
- `gestor.database`: `Database`, the storage operations over any database
  SQLAlchemy can reach;
- `gestor.celulas`, `gestor.redes`, `gestor.supervisores`: Flask blueprints
  with the HTTP routes;
- `gestor.auth`: bearer-token checking with HMAC-signed JWTs.

## Storage

```python
from gestor.database import Database

db = Database("sqlite:///gestao.db")
```

Creating a `Database` creates any missing tables: cells, meetings, cell
members, meeting attendance, services (*cultos*) and their metrics,
Bible-school classes and lessons, pastors, supervisors, leaders, members,
students and networks. `migrate()` can be called again at any time.

Every record carries an `id`, `created_at`, `updated_at` and `deleted_at`.
Deletes are soft: they set `deleted_at`, and deleted rows are left out of
every read. Timestamps are taken in the America/Sao_Paulo time zone.

The operations include `get_celulas`, `get_celula_by_id`, `create_celula`,
`update_celula`, `delete_celula`, `get_membros_celula`,
`adicionar_membro_celula`, `remover_membro_celula`, `get_encontros`,
`get_encontro_by_id_celula`, `create_encontro`, `update_encontro`,
`delete_encontro`, `get_redes`, `create_rede`, `update_rede`, `delete_rede`,
`get_supervisores`, `get_supervisor_by_id`, `create_supervisor`,
`update_supervisor` and `delete_supervisor`. Lookups by id raise
`RecordNotFound` when no live record has that id.

`get_encontro_by_id_celula` returns the cell's ten most recent meetings,
newest first, each as an `EncontroBody` that also lists the ids of the
members present. `create_encontro(encontro, membros_presentes)` stores the
meeting and one attendance row per member id.

## HTTP routes

Each routes module has a factory that takes a `Database` and returns a Flask
blueprint: `create_celulas_blueprint`, `create_redes_blueprint` and
`create_supervisores_blueprint`.

Cells (`/celulas`):

| Method | Path                                   | Action                                     |
|--------|----------------------------------------|--------------------------------------------|
| GET    | `/celulas`                             | list all cells                             |
| POST   | `/celulas`                             | create a cell (201)                        |
| GET    | `/celulas/<id>`                        | fetch one cell                             |
| PUT    | `/celulas/<id>`                        | replace a cell                             |
| DELETE | `/celulas/<id>`                        | delete a cell (204, empty body)            |
| GET    | `/celulas/<id>/membros`                | list a cell's members                      |
| POST   | `/celulas/<id>/membros`                | add a member to a cell (201)               |
| GET    | `/celulas/<id>/encontros`              | the cell's ten most recent meetings        |
| POST   | `/celulas/<id>/encontros`              | record a meeting and who attended (201)    |
| PUT    | `/celulas/<id>/encontros/<encontroId>` | update the meeting whose id is `<id>`      |

Networks (`/redes`):

| Method | Path          | Action                                          |
|--------|---------------|-------------------------------------------------|
| GET    | `/redes`      | list networks                                   |
| POST   | `/redes`      | create a network (200)                          |
| PUT    | `/redes/<id>` | replace a network                               |
| DELETE | `/redes/<id>` | delete a network, answering with a message      |

Supervisors (`/supervisores`):

| Method | Path                 | Action                                     |
|--------|----------------------|--------------------------------------------|
| GET    | `/supervisores`      | list supervisors                           |
| POST   | `/supervisores`      | create a supervisor (201)                  |
| GET    | `/supervisores/<id>` | fetch one supervisor                       |
| PUT    | `/supervisores/<id>` | replace a supervisor                       |
| DELETE | `/supervisores/<id>` | delete a supervisor, answering with a message |

Request and response bodies are JSON using snake_case field names, for
example a meeting:

```json
{
  "data": "2024-05-10T19:30:00-03:00",
  "pregador": "João",
  "qtd_presentes": 12,
  "qtd_visitantes": 3,
  "oferta_arrecadada": 150.5,
  "membros_presentes": [1, 4, 7]
}
```

A malformed body or a non-numeric id gives `400` with `{"error": ...}`
(`"Invalid ID"`, or `"Invalid supervisor ID"` under `/supervisores`). A
storage failure, including a record that does not exist, gives `500` in the
same shape. When a cell has no meetings, `GET /celulas/<id>/encontros`
answers `null`.

## Authentication

`gestor.auth.parse_jwt_token(token, hmac_secret)` verifies an HS256, HS384
or HS512 token and returns its `email` claim (an empty string when the claim
is absent), raising `AuthError` otherwise.

`gestor.auth.auth_middleware(hmac_secret)` returns a function for Flask's
`before_request`: it answers `401` with `{"error": "Unauthorized"}` unless the
request carries `Authorization: Bearer <token>` with a valid token, and
stores the e-mail address in `flask.g.email`.

## Putting an application together

```python
from flask import Flask

from gestor.auth import auth_middleware
from gestor.celulas import create_celulas_blueprint
from gestor.database import Database
from gestor.redes import create_redes_blueprint
from gestor.supervisores import create_supervisores_blueprint

db = Database("sqlite:///gestao.db")
app = Flask(__name__)
app.register_blueprint(create_celulas_blueprint(db))
app.register_blueprint(create_redes_blueprint(db))
app.register_blueprint(create_supervisores_blueprint(db))
# Optional: require a bearer token on every request.
# app.before_request(auth_middleware("secret"))

app.run(port=8080)
```

## What the package does not do

The package has no command to start a server and no ready-made application:
you build the Flask application yourself from the blueprints, as above. It
does not set up cross-origin (CORS) headers, does not read configuration or
secrets from the environment, and does not choose a database for you.