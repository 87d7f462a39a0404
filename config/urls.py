from django.urls import include, path

urlpatterns = [
    # ===== SAML service provider (login, ACS, logout, metadata) =====
    path("saml2/", include("djangosaml2.urls")),
]
