# accounts/views.py
import logging

from django.contrib import messages
from django.shortcuts import redirect, render
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.csrf import csrf_protect

from playlink.feedback import flash_form_errors
from playlink_api.exceptions import BackendError

from .forms import LoginForm, SignupForm
from .permissions import home_url_name, login_required

logger = logging.getLogger(__name__)


@csrf_protect
def login_view(request):
    next_url = request.GET.get("next") or request.POST.get("next")

    if request.method == "POST":
        form = LoginForm(data=request.POST)
        if form.is_valid():
            try:
                user = request.playlink.sign_in(form.cleaned_data["email"], form.cleaned_data["password"])
            except BackendError as exc:
                messages.error(request, exc.message)
            else:
                messages.success(request, f"Welcome back, {user.display_name}!")
                if next_url and url_has_allowed_host_and_scheme(next_url, allowed_hosts={request.get_host()}):
                    return redirect(next_url)
                return redirect(home_url_name(user))
        else:
            flash_form_errors(request, form)
    else:
        if request.playlink.is_authenticated:
            return redirect(home_url_name(request.playlink.user))
        form = LoginForm()

    return render(request, "accounts/login.html", {"form": form, "next": next_url})


@csrf_protect
def signup_view(request):
    if request.method == "POST":
        form = SignupForm(request.POST)
        if form.is_valid():
            try:
                request.playlink.client.register(form.to_payload())
            except BackendError as exc:
                messages.error(request, exc.message or "Registration failed. Please try again.")
            else:
                messages.success(request, "Account created successfully. Please sign in.")
                return redirect("accounts:login")
        else:
            flash_form_errors(request, form)
    else:
        form = SignupForm()
    return render(request, "accounts/signup.html", {"form": form})


@login_required
@csrf_protect
def logout_view(request):
    if request.method == "POST":
        request.playlink.sign_out()
        messages.info(request, "You have been logged out.")
        return redirect("home")
    return render(request, "accounts/logout_confirm.html")
