from django.conf import settings
from django.db import models

class SourceFile(models.Model):
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='source_files')
    name = models.CharField(max_length=255)
    file = models.FileField(upload_to='sources/')
    content_type = models.CharField(max_length=255, help_text='MIME type reported at upload')
    size = models.PositiveIntegerField(default=0)
    uploaded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-uploaded_at']

    def __str__(self):
        return self.name
