import io

from flask import Blueprint, send_file

from paie_api.common.auth import current_company_id, requires_perms
from paie_api.common.http import ok
from paie_api.common.paging import iso
from paie_api.services import documents

bp = Blueprint("documents", __name__, url_prefix="/api/v1/documents")


@bp.get("/<int:doc_id>")
@requires_perms("documents.read")
def get_document(doc_id: int):
    d = documents.get_document(current_company_id(), doc_id)
    return ok({
        "id": d.id,
        "kind": d.kind,
        "filename": d.filename,
        "contentType": d.content_type,
        "size": d.size_bytes,
        "employee_id": d.employee_id,
        "termination_id": d.termination_id,
        "url": documents.document_url(d.id),
        "created_at": iso(d.created_at),
    })


@bp.get("/<int:doc_id>/download")
@requires_perms("documents.read")
def download(doc_id: int):
    d = documents.get_document(current_company_id(), doc_id)
    return send_file(io.BytesIO(d.content), mimetype=d.content_type,
                     as_attachment=True, download_name=d.filename)
