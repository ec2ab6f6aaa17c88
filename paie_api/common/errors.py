from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from paie_api.extensions import db, jwt
from .http import fail


class APIError(Exception):
    """Domain error carrying an HTTP status and a user-facing (French) message."""
    def __init__(self, code, message, status_code=400, payload=None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.payload = payload


def not_found(message: str) -> APIError:
    return APIError("NOT_FOUND", message, 404)

def conflict(message: str, payload=None) -> APIError:
    return APIError("INVALID_STATE", message, 409, payload)

def invalid(message: str, payload=None) -> APIError:
    return APIError("VALIDATION_ERROR", message, 422, payload)


def _register_jwt_responses():
    @jwt.unauthorized_loader
    def _missing(reason):
        return fail("Authentification requise", status=401, code="AUTH_REQUIRED", detail=reason)

    @jwt.invalid_token_loader
    def _invalid(reason):
        return fail("Jeton invalide", status=401, code="TOKEN_INVALID", detail=reason)

    @jwt.expired_token_loader
    def _expired(_header, _payload):
        return fail("Session expirée", status=401, code="TOKEN_EXPIRED")


def register_error_handlers(app):
    _register_jwt_responses()

    @app.errorhandler(APIError)
    def _api_error(e: APIError):
        db.session.rollback()
        return fail(e.message, status=e.status_code, code=e.code, detail=e.payload)

    @app.errorhandler(HTTPException)
    def _http(e: HTTPException):
        return fail(e.description or e.name, status=e.code or 500)

    @app.errorhandler(IntegrityError)
    def _constraint(e: IntegrityError):
        db.session.rollback()
        orig = getattr(e, "orig", None)
        return fail("Contrainte d'unicité ou de clé étrangère violée", status=409,
                    code="CONSTRAINT_ERROR", detail=str(orig) if orig else None)

    @app.errorhandler(Exception)
    def _500(e: Exception):
        app.logger.exception("unhandled error: %s", e)
        db.session.rollback()
        return fail("Erreur interne du serveur", status=500)
