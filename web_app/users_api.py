# web_app/users_api.py
from __future__ import annotations

import uuid

from flask import Blueprint, current_app, jsonify

from budgetbook.dates import now_iso
from budgetbook.defaults import DEFAULT_CATEGORIES
from budgetbook.errors import Conflict, NotFound
from budgetbook.validation import user_payload
from web_app.helpers import get_engine, get_store, json_body, require_user

users_api = Blueprint("users_api", __name__, url_prefix="/api/users")


@users_api.get("")
def list_users():
    return jsonify(get_store().get_all_users())


@users_api.get("/<user_id>")
def get_user(user_id: str):
    return jsonify(require_user(user_id))


@users_api.post("")
def create_user():
    fields = user_payload(json_body())
    store = get_store()
    if store.get_user_by_name(fields["name"]):
        raise Conflict("A user with that name already exists")

    now = now_iso()
    user = {"id": str(uuid.uuid4()), "name": fields["name"], "createdAt": now, "updatedAt": now}
    store.insert_user(user)

    # every new user starts with the default category set
    store.insert_many("categories", [
        {"id": str(uuid.uuid4()), "userId": user["id"], "createdAt": now, "updatedAt": now, **cat}
        for cat in DEFAULT_CATEGORIES
    ], user["id"])

    current_app.logger.info("Created user %s (%s)", user["name"], user["id"])
    return jsonify(user), 201


@users_api.put("/<user_id>")
def update_user(user_id: str):
    fields = user_payload(json_body())
    store = get_store()
    clash = store.get_user_by_name(fields["name"])
    if clash and clash.get("id") != user_id:
        raise Conflict("A user with that name already exists")
    user = store.update_user(user_id, fields)
    if not user:
        raise NotFound("User not found")
    return jsonify(user)


@users_api.delete("/<user_id>")
def delete_user(user_id: str):
    if not get_store().delete_user(user_id):
        raise NotFound("User not found")
    get_engine().forget_user(user_id)
    current_app.logger.info("Deleted user %s and all their data", user_id)
    return jsonify({"message": "User and all associated data deleted successfully"})
