from django.contrib import admin

from .models import Answer, Question, Survey, SurveyResponse, SurveyTemplate


class QuestionInline(admin.TabularInline):
    model = Question
    extra = 0
    fields = ("position", "text", "type", "options")


@admin.register(Survey)
class SurveyAdmin(admin.ModelAdmin):
    list_display = ("title", "company", "created_by", "created_at")
    list_filter = ("company",)
    search_fields = ("title",)
    inlines = [QuestionInline]


class AnswerInline(admin.TabularInline):
    model = Answer
    extra = 0
    fields = ("question", "value")


@admin.register(SurveyResponse)
class SurveyResponseAdmin(admin.ModelAdmin):
    list_display = ("survey", "respondent", "created_at")
    inlines = [AnswerInline]


@admin.register(SurveyTemplate)
class SurveyTemplateAdmin(admin.ModelAdmin):
    list_display = ("title", "updated_at")
    search_fields = ("title",)
