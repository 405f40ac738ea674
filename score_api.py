"""
Underwriting Scoring API

A thin Flask service around the underwriting engine. Validates incoming
prefi / PLAID documents, scores them, records every result in the score
history and serves the history and debit report back.

The scoring core stays pure: all HTTP, upload and persistence concerns live here.
"""

import json
import os
from typing import Any, Dict, Tuple

from flask import Flask, jsonify, request
from werkzeug.utils import secure_filename

from history_store import ScoreHistoryStore
from underwriting_engine import (
    DocumentValidationError,
    build_cache,
    calculate_scores,
    get_debits_and_total,
    set_cache,
    validate_documents,
)
from underwriting_engine.config.scoring_config import CACHE_CONFIG
from underwriting_engine.validation import validate_plaid


MAX_UPLOAD_FILE_SIZE = 10 * 1024 * 1024  # 10MB per uploaded document

app = Flask(__name__)
app.config['MAX_CONTENT_LENGTH'] = 50 * 1024 * 1024  # 50MB request body
app.config['DB_PATH'] = os.environ.get(
    'UNDERWRITING_DB_PATH',
    os.path.join(os.path.dirname(os.path.abspath(__file__)), 'underwriting.db'),
)

# Memoization strategy can be bounded for long-running deployments
set_cache(build_cache({
    'strategy': os.environ.get('UNDERWRITING_CACHE_STRATEGY', CACHE_CONFIG['strategy']),
    'max_entries': int(os.environ.get('UNDERWRITING_CACHE_MAX_ENTRIES', CACHE_CONFIG['max_entries'])),
}))


def get_history_store() -> ScoreHistoryStore:
    """Return the history store for the configured database path."""
    store = app.extensions.get('score_history')
    if store is None or store.db_path != app.config['DB_PATH']:
        store = ScoreHistoryStore(app.config['DB_PATH'])
        app.extensions['score_history'] = store
    return store


def allowed_file(filename: str) -> bool:
    """Check if file extension is allowed."""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() == 'json'


def error_response(error: str, message: str, status: int = 400) -> Tuple[Any, int]:
    return jsonify({'error': error, 'message': message}), status


def score_and_record(prefi: Dict, plaid: Dict) -> Dict:
    """
    Score a validated document pair and persist the result.

    A persistence failure is logged and does not fail the request.
    """
    result = calculate_scores(prefi, plaid)

    try:
        get_history_store().save(result, request_data={'prefi': prefi, 'plaid': plaid})
    except Exception as e:
        app.logger.error(f"Error saving to database: {str(e)}", exc_info=True)

    app.logger.info(
        f"Scored application: core={result.core_score}, "
        f"bayesian={result.bayesian_score}, total={result.total_score}"
    )
    return result.to_dict()


@app.route('/api/score', methods=['POST'])
def score():
    """
    Score prefi and PLAID documents sent as JSON.

    Expects JSON body {"prefi": {...}, "plaid": {...}}.
    """
    data = request.get_json(silent=True) or {}
    prefi = data.get('prefi') if isinstance(data, dict) else None
    plaid = data.get('plaid') if isinstance(data, dict) else None

    if prefi is None or plaid is None:
        app.logger.warning("Score request missing prefi or plaid data")
        return error_response('Missing data', 'Both prefi and plaid data are required')

    try:
        validate_documents(prefi, plaid)
    except DocumentValidationError as e:
        return jsonify(e.to_dict()), 400

    try:
        return jsonify(score_and_record(prefi, plaid)), 200
    except Exception as e:
        app.logger.error(f"Error processing score: {str(e)}", exc_info=True)
        return error_response(
            'Processing error', str(e) or 'Error processing score calculation', 500
        )


def _read_uploaded_json(field: str) -> Dict:
    """Read one uploaded JSON document, raising DocumentValidationError on bad input."""
    upload = request.files[field]
    filename = secure_filename(upload.filename or '')

    if not filename or not allowed_file(filename):
        raise DocumentValidationError('Upload error', 'Only JSON files are allowed')

    content = upload.read()
    if len(content) > MAX_UPLOAD_FILE_SIZE:
        raise DocumentValidationError('File too large', 'File size exceeds the 10MB limit')

    try:
        return json.loads(content.decode('utf-8'))
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise DocumentValidationError(
            f'Invalid {field} JSON', f'The {field} file contains invalid JSON data'
        )


@app.route('/api/score/files', methods=['POST'])
def score_files():
    """
    Score prefi and PLAID documents uploaded as JSON files.

    Expects multipart form fields "prefi" and "plaid".
    """
    if 'prefi' not in request.files or 'plaid' not in request.files:
        return error_response('Missing files', 'Both prefi and plaid files are required')

    try:
        prefi = _read_uploaded_json('prefi')
        plaid = _read_uploaded_json('plaid')
        validate_documents(prefi, plaid)
    except DocumentValidationError as e:
        app.logger.warning(f"Rejected uploaded documents: {e.error}")
        return jsonify(e.to_dict()), 400

    try:
        return jsonify(score_and_record(prefi, plaid)), 200
    except Exception as e:
        app.logger.error(f"Error processing score from files: {str(e)}", exc_info=True)
        return error_response(
            'Processing error', str(e) or 'Error processing score calculation from files', 500
        )


@app.route('/api/debits', methods=['POST'])
def debits():
    """
    Debit summary for a PLAID document.

    Expects JSON body {"plaid": {...}}.
    """
    data = request.get_json(silent=True) or {}
    plaid = data.get('plaid') if isinstance(data, dict) else None

    try:
        validate_plaid(plaid)
    except DocumentValidationError as e:
        return jsonify(e.to_dict()), 400

    return jsonify(get_debits_and_total(plaid).to_dict()), 200


@app.route('/api/history', methods=['GET'])
def history():
    """Score calculation history, newest first."""
    try:
        return jsonify(get_history_store().list_history()), 200
    except Exception as e:
        app.logger.error(f"Error fetching history: {str(e)}", exc_info=True)
        return error_response(
            'Database error', str(e) or 'Error fetching calculation history', 500
        )


@app.errorhandler(413)
def request_too_large(e):
    return error_response('File too large', 'Request body exceeds the upload limit')


if __name__ == '__main__':
    import logging

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s"
    )

    port = int(os.environ.get('PORT', '3001'))

    # Debug mode is controlled by environment variable for security
    # Set FLASK_DEBUG=1 only in development environments
    debug_mode = os.environ.get('FLASK_DEBUG', '0') == '1'
    if debug_mode:
        app.logger.warning("Running in DEBUG mode. Not suitable for production!")

    app.run(debug=debug_mode, port=port, host='0.0.0.0')
