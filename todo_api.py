"""
Todo REST API
Flask endpoints over an injected TodoStore, plus an HTML list view
"""

import logging

from flask import Blueprint, Flask, current_app, jsonify, render_template_string, request
from werkzeug.exceptions import HTTPException

from todo_store import InvalidInput, TodoError, TodoStore, parse_identifier

bp = Blueprint('todos', __name__)

STORE_KEY = 'todo_store'

DEFAULT_CONFIG = {
    'SEED_DEFAULTS': True,
    'LOG_LEVEL': 'INFO',
}

LIST_TEMPLATE = """<!doctype html>
<html>
<head>
  <title>My TODO List</title>
  <style>
    li.done { text-decoration: line-through; color: grey; }
  </style>
</head>
<body>
  <h2>My TODO List</h2>
  {% if todos %}
  <ul>
    {% for todo in todos %}
    <li data-id="{{ todo.id }}"{% if todo.is_done %} class="done"{% endif %}>
      {{ todo.description }} <span>({{ 'Done' if todo.is_done else 'Pending' }})</span>
    </li>
    {% endfor %}
  </ul>
  {% else %}
  <p>No tasks found.</p>
  {% endif %}
</body>
</html>
"""


def get_store() -> TodoStore:
    """Store bound to the current app"""
    return current_app.extensions[STORE_KEY]


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInput("Request body must be a JSON object")
    return data


@bp.route('/api/todos', methods=['GET'])
def get_todos():
    """Get all todos"""
    return jsonify([t.to_dict() for t in get_store().list()])


@bp.route('/api/todos/<todo_id>', methods=['GET'])
def get_todo(todo_id):
    """Get a specific todo by ID"""
    todo = get_store().get(parse_identifier(todo_id))
    return jsonify(todo.to_dict())


@bp.route('/api/todos', methods=['POST'])
def create_todo():
    """Create a new todo"""
    data = _json_body()
    if 'description' not in data:
        raise InvalidInput("Description is required")

    todo = get_store().create(data['description'])
    return jsonify(todo.to_dict()), 201


@bp.route('/api/todos/<todo_id>', methods=['PUT', 'PATCH'])
def update_todo(todo_id):
    """Update a todo; only the fields sent are changed"""
    todo_id = parse_identifier(todo_id)
    todo = get_store().update_partial(todo_id, _json_body())
    return jsonify(todo.to_dict())


@bp.route('/api/todos/<todo_id>', methods=['DELETE'])
def delete_todo(todo_id):
    """Delete a todo"""
    get_store().delete_by_id(parse_identifier(todo_id))
    return '', 204


@bp.route('/todos', methods=['GET'])
def list_view():
    """Render the todo list, keyed by record id"""
    return render_template_string(LIST_TEMPLATE, todos=get_store().list())


@bp.route('/health', methods=['GET'])
def health():
    return jsonify({"status": "ok", "count": len(get_store())})


@bp.app_errorhandler(TodoError)
def handle_todo_error(error):
    current_app.logger.info("%s %s -> %d: %s", request.method, request.path, error.status, error.message)
    return jsonify({"error": error.message}), error.status


@bp.app_errorhandler(HTTPException)
def handle_http_error(error):
    return jsonify({"error": error.description}), error.code


def create_app(config=None, store=None):
    """
    Build the Flask app.

    Config comes from DEFAULT_CONFIG, then TODO_* environment variables,
    then the `config` mapping. A store passed in is used as-is; otherwise
    one is built, seeded according to SEED_DEFAULTS.
    """
    app = Flask(__name__)
    app.config.from_mapping(DEFAULT_CONFIG)
    app.config.from_prefixed_env('TODO')
    if config:
        app.config.from_mapping(config)

    app.json.sort_keys = False
    app.logger.setLevel(str(app.config['LOG_LEVEL']).upper())

    if store is None:
        store = TodoStore() if app.config['SEED_DEFAULTS'] else TodoStore(seed=())
    app.extensions[STORE_KEY] = store
    app.register_blueprint(bp)

    app.logger.info("Todo API ready with %d todos", len(store))
    return app


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    app = create_app()
    app.run(debug=app.config.get('DEBUG', False))
