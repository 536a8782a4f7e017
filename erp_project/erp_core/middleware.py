from django.utils.deprecation import MiddlewareMixin
from .models import Company, UserRole


class CurrentCompanyMiddleware(MiddlewareMixin):
    # Run on every request and
    # attach a .company and .role to the request, based on the logged-in user
    def process_request(self, request):
        request.company = None
        request.role = None
        if not request.user.is_authenticated:  # Unauthenticated users
            return

        roles = UserRole.objects.select_related("company").filter(
            user=request.user, is_active=True
        )

        # If user switched companies,
        # choice is stored in the session as "active_company_id"
        company_id = request.session.get("active_company_id")
        if company_id:
            # ensure security: user must hold an active role in that company,
            # so a tampered session cannot "jump" into another company
            role = roles.filter(company_id=company_id).first()
        else:
            # Default company fallback: the first company the user joined
            role = roles.order_by("created_at", "pk").first()

        if role is not None:
            request.company = role.company
            request.role = role.role


def switch_company(request, company_id):
    """Remember the chosen company for this session, if the user belongs to it."""
    company = Company.objects.filter(
        pk=company_id, user_roles__user=request.user, user_roles__is_active=True
    ).first()
    if company is None:
        return None
    request.session["active_company_id"] = company.pk
    request.company = company
    request.role = UserRole.role_of(request.user, company)
    return company
