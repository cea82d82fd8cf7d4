from django import forms
from django.conf import settings


class SourceUploadForm(forms.Form):
    file = forms.FileField()
    name = forms.CharField(required=False, max_length=255)

    def clean_file(self):
        f = self.cleaned_data['file']
        limit = settings.QUIZFORGE_MAX_UPLOAD_BYTES
        if f.size > limit:
            raise forms.ValidationError(f"File size exceeds the limit of {limit // (1024 * 1024)} MB.")
        return f
