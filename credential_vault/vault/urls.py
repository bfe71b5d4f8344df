from django.urls import path
from . import views

urlpatterns = [
    path('passwords/', views.passwords, name='vault_passwords'),
    path('passwords/delete/', views.delete_passwords, name='vault_delete_passwords'),
    path('passwords/<str:entry_id>/', views.password_detail, name='vault_password_detail'),
]
