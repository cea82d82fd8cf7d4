from datetime import datetime, timezone as dt_timezone

from django import forms


class QuizCreationForm(forms.Form):
    name = forms.CharField(required=False, max_length=255)
    description = forms.CharField(required=False)


class QuizSettingsForm(forms.Form):
    name = forms.CharField(required=False, max_length=255)
    description = forms.CharField(required=False)
    slug = forms.CharField(max_length=64)
    start_time = forms.DateTimeField(required=False)
    end_time = forms.DateTimeField(required=False)
    # Range is checked by the service so the message matches every caller.
    time_limit_minutes = forms.IntegerField(required=False)


class EpochOrISODateTimeField(forms.DateTimeField):
    """Accepts epoch milliseconds (int) or an ISO 8601 string."""

    def to_python(self, value):
        if isinstance(value, bool):
            raise forms.ValidationError("Enter a valid date/time.", code="invalid")
        if isinstance(value, int):
            try:
                return datetime.fromtimestamp(value / 1000, tz=dt_timezone.utc)
            except (OverflowError, OSError, ValueError):
                raise forms.ValidationError("Timestamp is out of range.", code="invalid")
        if value in self.empty_values or isinstance(value, (str, datetime)):
            return super().to_python(value)
        raise forms.ValidationError("Enter a valid date/time.", code="invalid")


class ResponseSubmitForm(forms.Form):
    session_start_time = EpochOrISODateTimeField(required=False)
