"""
Flask routes for the manga-lens batch web service.

This module contains all route handlers for the application:
- Viewer page
- Directory listing, image and text serving for the paged viewer
- Batch translation of a server-side directory or an uploaded folder
"""

from flask import Blueprint, Response, current_app, jsonify, render_template, request, send_file
from pathlib import Path
import logging
import os
import time
from werkzeug.security import safe_join
from werkzeug.utils import secure_filename

from mangalens.config import resolve_api_key
from mangalens.gemini_client import guess_mime_type
from mangalens.orchestrator import load_outcome, translate_directory
from mangalens.render import render_html
from mangalens.storage import derived_text_path, is_image_file, list_artifacts, read_text, resolve_directory

logger = logging.getLogger(__name__)

# Create blueprint for main routes
bp = Blueprint('main', __name__)

_TRUE_VALUES = {'true', '1', 'yes', 'on'}


def _as_bool(value) -> bool:
    """JSON bodies send booleans, multipart forms send strings."""
    if isinstance(value, bool):
        return value
    return str(value or '').strip().lower() in _TRUE_VALUES


def _file_in_dir(dir_arg, file_arg):
    """
    Join a requested file name onto a directory.

    Returns None when the name would escape the directory.
    """
    full = os.path.abspath(str(dir_arg or ''))
    return safe_join(full, str(file_arg or ''))


def _upload_name(filename: str) -> str:
    """Keep the original (possibly non-ASCII) page name, minus any folder part."""
    name = Path(filename.replace('\\', '/')).name
    return '' if name in ('.', '..') else name


@bp.route('/health')
def health():
    """Health check endpoint for load balancers."""
    return jsonify({'status': 'ok'})


@bp.route('/')
def index():
    """Paged viewer: image on one side, translated rows on the other."""
    return render_template(
        'viewer.html',
        model_name=current_app.config['GEMINI_MODEL_NAME'],
    )


@bp.route('/api/list')
def api_list():
    """
    List images and whether their text exists.

    GET /api/list?dir=...  ->  {dir, files: [{file, hasText}]}
    """
    dir_arg = request.args.get('dir')
    if not dir_arg:
        return jsonify({'error': 'dir is required'}), 400
    full = resolve_directory(dir_arg)
    files = [a.to_dict() for a in list_artifacts(full)]
    return jsonify({'dir': full, 'files': files})


@bp.route('/api/image')
def api_image():
    """GET /api/image?dir=...&file=...  ->  raw image bytes."""
    file_arg = request.args.get('file', '')
    if not is_image_file(file_arg):
        return Response('Not an image file', status=400, mimetype='text/plain')
    path = _file_in_dir(request.args.get('dir'), file_arg)
    if path is None or not os.path.isfile(path):
        return Response('Not found', status=404, mimetype='text/plain')
    return send_file(path, mimetype=guess_mime_type(path, default='application/octet-stream'))


@bp.route('/api/text')
def api_text():
    """GET /api/text?dir=...&file=...  ->  raw persisted model output."""
    name = Path(request.args.get('file', '')).name
    image_path = _file_in_dir(request.args.get('dir'), name) if name else None
    text_path = derived_text_path(image_path) if image_path else None
    if not text_path or not os.path.isfile(text_path):
        return Response('Text not found', status=404, mimetype='text/plain')
    return Response(read_text(text_path), content_type='text/plain; charset=utf-8')


@bp.route('/api/pairs')
def api_pairs():
    """
    Parsed view of the persisted text.

    GET /api/pairs?dir=...&file=...
      -> {file, structured: true, pairs, html}  or  {file, structured: false, text}
    """
    file_arg = request.args.get('file', '')
    try:
        outcome = load_outcome(request.args.get('dir', ''), file_arg)
    except FileNotFoundError:
        return jsonify({'error': 'Text not found'}), 404

    if outcome.is_structured:
        return jsonify({
            'file': file_arg,
            'structured': True,
            'pairs': [p.model_dump() for p in outcome.pairs],
            'html': str(render_html(outcome.pairs)),
        })
    return jsonify({'file': file_arg, 'structured': False, 'text': outcome.raw_text})


@bp.route('/api/translate-dir', methods=['POST'])
def api_translate_dir():
    """
    Batch translate a server-side directory.

    POST {dir, overwrite?, apiKey?, modelName?, prompt?}
      -> {dir, processed, results: [{file, status, message?}]}
    """
    body = request.get_json(silent=True) or {}
    dir_arg = body.get('dir')
    if not dir_arg or not isinstance(dir_arg, str):
        return jsonify({'error': 'dir is required'}), 400

    summary = translate_directory(
        dir_arg,
        overwrite=_as_bool(body.get('overwrite', False)),
        api_key=body.get('apiKey'),
        model_name=body.get('modelName') or current_app.config['GEMINI_MODEL_NAME'],
        prompt=body.get('prompt') or current_app.config['DEFAULT_PROMPT'],
    )
    return jsonify(summary.to_dict())


@bp.route('/api/upload-and-translate', methods=['POST'])
def api_upload_and_translate():
    """
    Save an uploaded folder into a fresh directory, then batch translate it.

    Multipart: files (repeated), dirName?, overwrite? ('true'), apiKey?
    """
    api_key = resolve_api_key(request.form.get('apiKey'))
    if not api_key:
        return jsonify({'error': 'No API key provided'}), 400

    uploads = [f for f in request.files.getlist('files') if f and f.filename]
    if not uploads:
        return jsonify({'error': 'No files uploaded'}), 400

    dir_name = secure_filename(request.form.get('dirName') or '') or str(int(time.time() * 1000))
    dest = os.path.join(current_app.config['UPLOADS_ROOT'], dir_name)
    os.makedirs(dest, exist_ok=True)

    saved = 0
    for upload in uploads:
        name = _upload_name(upload.filename)
        if not name:
            continue
        upload.save(os.path.join(dest, name))
        saved += 1
    logger.info("Saved %d uploaded file(s) into %s", saved, dest)

    summary = translate_directory(
        dest,
        overwrite=_as_bool(request.form.get('overwrite')),
        api_key=api_key,
        model_name=current_app.config['GEMINI_MODEL_NAME'],
        prompt=current_app.config['DEFAULT_PROMPT'],
    )
    return jsonify(summary.to_dict())
