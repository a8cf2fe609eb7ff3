from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

from .models import User, UserAddress


class UserAddressInline(admin.TabularInline):
    model = UserAddress
    extra = 0
    fields = ("full_name", "phone", "line1", "ward", "district", "city", "country_code", "is_default")


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    ordering = ("email",)
    list_display = ("email", "name", "is_staff", "is_active", "voucher_used", "date_joined")
    search_fields = ("email", "name")
    readonly_fields = ("date_joined", "last_login")
    inlines = (UserAddressInline,)

    fieldsets = (
        (None, {"fields": ("email", "password")}),
        ("Personal info", {"fields": ("name",)}),
        (
            "Permissions",
            {
                "fields": (
                    "is_active",
                    "is_staff",
                    "is_superuser",
                    "groups",
                    "user_permissions",
                )
            },
        ),
        ("Important dates", {"fields": ("last_login", "date_joined")}),
    )
    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("email", "password1", "password2", "is_staff", "is_active"),
            },
        ),
    )

    @admin.display(boolean=True, description="Voucher used")
    def voucher_used(self, obj) -> bool:
        return hasattr(obj, "voucher_redemption")


@admin.register(UserAddress)
class UserAddressAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "full_name", "city", "is_default", "updated_at")
    search_fields = ("user__email", "full_name", "city", "phone")
    list_filter = ("country_code",)
