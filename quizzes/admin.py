from django.contrib import admin
from .models import Quiz, Question, QuizResponse, TokenBucket


class QuestionInline(admin.TabularInline):
    model = Question
    extra = 0


@admin.register(Quiz)
class QuizAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "owner", "accepting_responses", "generation_status")
    inlines = [QuestionInline]


@admin.register(QuizResponse)
class QuizResponseAdmin(admin.ModelAdmin):
    list_display = ("id", "slug", "submitted_at")
    readonly_fields = ("quiz", "slug", "values", "question_count", "submitted_at", "session_start_time")


admin.site.register(TokenBucket)
