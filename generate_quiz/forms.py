from django import forms


class QuestionGenerationForm(forms.Form):
    SOURCE_CHOICES = [("file", "File"), ("url", "URL")]

    source_type = forms.ChoiceField(choices=SOURCE_CHOICES)
    file_id = forms.IntegerField(required=False)
    url = forms.CharField(required=False, max_length=2048)
    num_questions = forms.IntegerField(
        initial=10,
        help_text="How many questions should the AI generate?"
    )

    def clean(self):
        cleaned = super().clean()
        source_type = cleaned.get("source_type")
        if source_type == "file" and cleaned.get("file_id") is None:
            self.add_error("file_id", "Please select a file.")
        if source_type == "url" and not cleaned.get("url"):
            self.add_error("url", "Please enter a URL.")
        return cleaned
