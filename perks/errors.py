# perks/errors.py
import logging
from flask import jsonify
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db, jwt
from .utils.api import api_error

logger = logging.getLogger(__name__)

def register_error_handlers(app):
    @app.errorhandler(ValueError)
    def handle_value_error(e):
        r = jsonify(api_error(str(e)))
        r.status_code = 422
        return r

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(e):
        db.session.rollback()
        logger.exception("database failure")
        r = jsonify(api_error("Service temporarily unavailable. Please try again.", {"error": "server_error"}))
        r.status_code = 503
        return r

    @jwt.unauthorized_loader
    def missing_token(reason):
        return jsonify(api_error("Unauthorized")), 401

    @jwt.invalid_token_loader
    def bad_token(reason):
        return jsonify(api_error("Unauthorized")), 401

    @jwt.expired_token_loader
    def expired_token(header, payload):
        return jsonify(api_error("Session expired")), 401
