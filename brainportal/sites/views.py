from django.shortcuts import get_object_or_404
from django.contrib.auth.decorators import login_required
from django.core.exceptions import ValidationError
from django.http import HttpRequest, HttpResponse, JsonResponse, Http404
from django.views.decorators.http import require_GET, require_POST

from userfiles.models import UserFile
from .forms import SiteForm
from .models import Site
from . import services


def site_json(site: Site) -> dict:
    return {
        'id': site.id,
        'name': site.name,
        'description': site.description,
        'users': sorted(site.users.values_list('id', flat=True)),
        'managers': sorted(site.managers().values_list('id', flat=True)),
    }


def form_errors(form) -> dict:
    return {field: list(errors) for field, errors in form.errors.items()}


def can_manage(user, site: Site) -> bool:
    if user.is_admin():
        return True
    return user.is_site_manager() and user.site_id == site.id


@login_required
@require_GET
def site_list(request: HttpRequest) -> HttpResponse:
    if request.user.is_admin():
        qs = Site.objects.all()
    else:
        qs = Site.objects.filter(id=request.user.site_id)
    return JsonResponse({'sites': [site_json(s) for s in qs]})


@login_required
@require_POST
def site_create(request: HttpRequest) -> HttpResponse:
    if not request.user.is_admin():
        return JsonResponse({'error': 'Not authorized to create sites'}, status=403)
    form = SiteForm(request.POST)
    if not form.is_valid():
        return JsonResponse({'errors': form_errors(form)}, status=400)
    site = services.create_site(
        form.instance,
        user_ids=form.user_ids() or (),
        manager_ids=form.manager_ids() or (),
    )
    return JsonResponse(site_json(site), status=201)


@login_required
@require_POST
def site_edit(request: HttpRequest, site_id: int) -> HttpResponse:
    site = get_object_or_404(Site, id=site_id)
    if not can_manage(request.user, site):
        return JsonResponse({'error': 'Not authorized to edit this site'}, status=403)
    # Fields left out of the request keep their stored values.
    data = request.POST.copy()
    data.setdefault('name', site.name)
    data.setdefault('description', site.description)
    form = SiteForm(data, instance=site)
    if not form.is_valid():
        return JsonResponse({'errors': form_errors(form)}, status=400)
    try:
        services.update_site(site, user_ids=form.user_ids(), manager_ids=form.manager_ids())
    except ValidationError as e:
        return JsonResponse({'errors': e.message_dict}, status=400)
    return JsonResponse(site_json(site))


@login_required
@require_POST
def site_delete(request: HttpRequest, site_id: int) -> HttpResponse:
    site = get_object_or_404(Site, id=site_id)
    if not request.user.is_admin():
        return JsonResponse({'error': 'Not authorized to delete this site'}, status=403)
    services.destroy_site(site)
    return HttpResponse(status=204)


@login_required
@require_GET
def site_userfile(request: HttpRequest, site_id: int, userfile_id: int) -> HttpResponse:
    site = get_object_or_404(Site, id=site_id)
    if not can_manage(request.user, site):
        return JsonResponse({'error': 'Not authorized to browse this site'}, status=403)
    try:
        f = site.userfiles_find_id(userfile_id)
    except UserFile.DoesNotExist:
        raise Http404('No such file for this site')
    data = {
        'id': f.id,
        'name': f.name,
        'size': f.size,
        'user': f.user.username,
    }
    return JsonResponse(data)
