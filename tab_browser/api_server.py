"""Lightweight local HTTP API exposing the tab registry and caches."""

from typing import Any, Dict, Optional, TYPE_CHECKING
import threading
from flask import Flask, request, jsonify

from .config import API_PORT
from .exceptions import TabNotFoundError

if TYPE_CHECKING:
	from .main import TabShell


_app_instance: Optional[Flask] = None
_server_thread: Optional[threading.Thread] = None


def _error(message: str, status: int):
	return jsonify({'status': 'error', 'message': message}), status


def _cache_stats(shell: "TabShell") -> Dict[str, Any]:
	return {
		'memory': shell.memory_cache.get_stats().to_dict(),
		'durable': shell.tab_data.get_stats().to_dict(),
		'inflight': shell.tab_data.inflight.pending_keys(),
	}


def create_app(shell: "TabShell") -> Flask:
	app = Flask("tab_browser_api")

	@app.get("/health")
	def health():
		return jsonify({"status": "ok"})

	# Basic CORS for a local dashboard client
	@app.after_request
	def add_cors_headers(response):
		response.headers["Access-Control-Allow-Origin"] = "*"
		response.headers["Access-Control-Allow-Methods"] = "GET, POST, PATCH, DELETE, OPTIONS"
		response.headers["Access-Control-Allow-Headers"] = "Content-Type"
		return response

	@app.errorhandler(TabNotFoundError)
	def tab_not_found(e):
		return _error(str(e), 404)

	@app.errorhandler(ValueError)
	def bad_request(e):
		return _error(str(e), 400)

	@app.get("/tabs")
	def list_tabs():
		return jsonify(shell.tabs.to_dict())

	@app.post("/tabs")
	def add_tab():
		data = request.get_json(silent=True) or {}
		if not isinstance(data, dict):
			return _error('body must be a JSON object', 400)
		title = str(data.get('title', '')).strip()
		path = str(data.get('path', '')).strip()
		if not title or not path:
			return _error('title and path are required', 400)
		if not path.startswith('/'):
			return _error('path must start with /', 400)

		if data.get('navigate'):
			tab = shell.tabs.open_in_tab(title, path, icon=data.get('icon'))
		else:
			tab = shell.tabs.add_tab(
				title,
				path,
				icon=data.get('icon'),
				closable=data.get('closable', True),
			)
		return jsonify({'status': 'ok', 'tab': tab.to_dict(), 'active_tab_id': shell.tabs.active_tab_id})

	@app.patch("/tabs/<tab_id>")
	def update_tab(tab_id):
		data = request.get_json(silent=True)
		if not isinstance(data, dict):
			return _error('body must be a JSON object', 400)
		if not data:
			return _error('no fields to update', 400)
		tab = shell.tabs.update_tab(tab_id, **data)
		return jsonify({'status': 'ok', 'tab': tab.to_dict()})

	@app.delete("/tabs/<tab_id>")
	def remove_tab(tab_id):
		if not shell.tabs.remove_tab(tab_id):
			return _error(f"Tab '{tab_id}' not found", 404)
		return jsonify({'status': 'ok', 'active_tab_id': shell.tabs.active_tab_id})

	@app.post("/tabs/<tab_id>/activate")
	def activate_tab(tab_id):
		tab = shell.tabs.set_active_tab(tab_id)
		return jsonify({'status': 'ok', 'tab': tab.to_dict()})

	@app.post("/tabs/<tab_id>/close-others")
	def close_other_tabs(tab_id):
		shell.tabs.get_tab(tab_id)
		shell.tabs.close_other_tabs(tab_id)
		return jsonify({'status': 'ok', **shell.tabs.to_dict()})

	@app.post("/tabs/close-all")
	def close_all_tabs():
		shell.tabs.close_all_tabs()
		return jsonify({'status': 'ok'})

	@app.get("/cache/stats")
	def cache_stats():
		return jsonify(_cache_stats(shell))

	@app.get("/cache/top")
	def cache_top():
		limit = request.args.get('limit', 10, type=int)
		return jsonify({'entries': shell.memory_cache.get_top_entries(limit)})

	@app.post("/cache/cleanup")
	def cache_cleanup():
		removed = shell.memory_cache.cleanup()
		return jsonify({'status': 'ok', 'removed': removed})

	@app.delete("/cache")
	def clear_cache():
		shell.tab_data.clear_all_tab_data()
		return jsonify({'status': 'ok', **_cache_stats(shell)})

	@app.get("/cache/entry")
	def get_cache_entry():
		key = request.args.get('key', '')
		if not key:
			return _error('key is required', 400)
		data = shell.tab_data.get_tab_data(key)
		if data is None:
			return _error(f"No cached data for '{key}'", 404)
		return jsonify({'key': key, 'data': data})

	@app.delete("/cache/entry")
	def clear_cache_entry():
		key = request.args.get('key', '')
		if not key:
			return _error('key is required', 400)
		shell.tab_data.clear_tab_data(key)
		return jsonify({'status': 'ok'})

	return app


def start_api_server(shell: "TabShell", port: int = API_PORT) -> None:
	"""
	Start the local API server in a background thread.
	Only binds to 127.0.0.1.
	"""
	global _app_instance, _server_thread
	if _server_thread and _server_thread.is_alive():
		return
	_app_instance = create_app(shell)

	def run():
		_app_instance.run(host="127.0.0.1", port=port, debug=False, use_reloader=False)

	_server_thread = threading.Thread(target=run, daemon=True)
	_server_thread.start()
