from django.urls import path
from . import views

urlpatterns = [
    path('files/', views.file_collection, name='source_files'),
    path('files/<int:file_id>/', views.file_detail, name='source_file_detail'),
]
