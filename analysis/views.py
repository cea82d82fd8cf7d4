from quizzes.api import api_view

from . import services


@api_view(methods=("GET", "POST", "DELETE"))
def quiz_analysis(request, quiz_id):
    if request.method == "POST":
        analysis = services.generate_analysis(request.user, quiz_id)
        return {"analysis": services.serialize(analysis)}
    if request.method == "DELETE":
        return {"deleted": services.delete_analysis(request.user, quiz_id)}
    return {"analysis": services.serialize(services.get_analysis(request.user, quiz_id))}
