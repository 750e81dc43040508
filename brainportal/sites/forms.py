from django import forms

from users.models import User
from .models import Site


class SiteForm(forms.ModelForm):
    """Collects site validation errors on ``form.errors`` instead of raising."""

    users = forms.ModelMultipleChoiceField(queryset=User.objects.all(), required=False)
    managers = forms.ModelMultipleChoiceField(queryset=User.objects.all(), required=False)

    class Meta:
        model = Site
        fields = ['name', 'description']

    def user_ids(self):
        if 'users' not in self.data:
            return None
        return [u.pk for u in self.cleaned_data['users']]

    def manager_ids(self):
        if 'managers' not in self.data:
            return None
        return [u.pk for u in self.cleaned_data['managers']]
