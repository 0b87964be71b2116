from django.contrib import admin

from .models import GiveawayWinner, Prize


@admin.register(Prize)
class PrizeAdmin(admin.ModelAdmin):
    list_display = ("name", "company", "rank", "created_at")
    list_filter = ("company",)
    search_fields = ("name",)


@admin.register(GiveawayWinner)
class GiveawayWinnerAdmin(admin.ModelAdmin):
    list_display = ("survey", "rank", "winner_name", "prize", "created_at")
    list_filter = ("survey",)
    search_fields = ("winner_name", "winner_email")
