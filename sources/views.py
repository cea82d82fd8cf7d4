import logging

from quizzes.api import api_view, clean_form

from . import storage
from .forms import SourceUploadForm

logger = logging.getLogger(__name__)


@api_view(methods=("GET", "POST"))
def file_collection(request):
    if request.method == "POST":
        data = clean_form(SourceUploadForm, request.POST, request.FILES)
        source = storage.save_upload(request.user, data["file"], data["name"])
        return {"file": storage.serialize(source)}
    return {"files": [storage.serialize(s) for s in storage.list_files(request.user)]}


@api_view(methods=("DELETE",))
def file_detail(request, file_id):
    storage.delete_file(request.user, file_id)
    return {"success": True}
