import pytest

from storefront.services.policy import policy


@pytest.mark.parametrize(
    "action",
    ["cart:manage", "order:create", "order:read", "profile:read", "profile:manage", "wishlist:manage", "review:write"],
)
def test_user_actions_allowed_for_both_roles(action):
    assert policy("user", action)
    assert policy("admin", action)


@pytest.mark.parametrize(
    "action",
    [
        "order:read-all",
        "order:update",
        "order:mark-paid",
        "order:mark-delivered",
        "order:delete",
        "coupon:manage",
        "product:manage",
        "review:moderate",
        "user:manage",
    ],
)
def test_admin_only_actions(action):
    assert not policy("user", action)
    assert policy("admin", action)


def test_unknown_role_or_action_is_denied():
    assert not policy("guest", "cart:manage")
    assert not policy("admin", "launch-missiles")
