"""Mock API for the doctor-appointment booking system.

Flask server with in-memory storage implementing the REST contract the
medibook client consumes:
- Auth (register, login, me)
- Providers, provider profile and per-day availability
- Booking and the patient/provider appointment lifecycles
- Three-step document upload with an in-memory blob store

Run with: python mock_api.py
"""
import uuid
from datetime import datetime

from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.security import check_password_hash, generate_password_hash

from medibook import config
from medibook.availability import day_slots
from medibook.logging_config import RequestIDMiddleware, get_logger, setup_structured_logging

app = Flask(__name__)
CORS(app)
app.wsgi_app = RequestIDMiddleware(app.wsgi_app)

logger = get_logger("mock_api")

# In-memory storage
users = {}          # user_id -> user dict (with password_hash)
tokens = {}         # token -> user_id
providers = {}      # provider_id (== user_id) -> provider dict
appointments = []
documents = {}      # document_id -> document dict
blobs = {}          # document_id -> bytes
appointment_counter = 1000

PROFILE_FIELDS = ("name", "speciality", "degree", "experience", "about", "fees", "address", "available")


def reset_state():
    """Drop all stored data (used between tests)."""
    global appointment_counter
    users.clear()
    tokens.clear()
    providers.clear()
    appointments.clear()
    documents.clear()
    blobs.clear()
    appointment_counter = 1000


def error(code, status):
    return jsonify({"success": False, "error": code}), status


def public_user(user):
    return {k: v for k, v in user.items() if k != "password_hash"}


def current_user():
    """Resolve the bearer token from the Authorization header."""
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return None
    user_id = tokens.get(header[len("Bearer "):])
    return users.get(user_id) if user_id else None


def public_provider(provider):
    return {
        "id": provider["id"],
        "name": provider["name"],
        "email": provider["email"],
        "speciality": provider["speciality"],
        "description": provider["about"],
        "experience": provider["experience"],
        "appointmentFee": provider["fees"],
        "available": provider["available"],
    }


def parse_slot(slot_date, slot_time):
    """D_M_YYYY + '02:30 PM' -> datetime, or None if malformed."""
    try:
        day, month, year = (int(part) for part in slot_date.split("_"))
        moment = datetime.strptime(slot_time, config.SLOT_LABEL_FORMAT)
        return datetime(year, month, day, moment.hour, moment.minute)
    except (ValueError, AttributeError):
        return None


def is_booked(provider_id, slot_date, slot_time):
    return any(
        apt["providerId"] == provider_id
        and apt["slotDate"] == slot_date
        and apt["slotTime"] == slot_time
        and apt["status"] != "cancelled"
        for apt in appointments
    )


def find_appointment(appointment_id):
    return next((apt for apt in appointments if apt["id"] == appointment_id), None)


@app.route('/health', methods=['GET'])
def health_check():
    """GET /health - Health check endpoint."""
    return jsonify({
        "success": True,
        "status": "healthy",
        "total_appointments": len(appointments),
        "timestamp": datetime.now().isoformat()
    })


@app.route('/auth/register', methods=['POST'])
def register():
    """POST /auth/register - Create a patient or provider account.

    Expected JSON body:
    {
        "name": "Jane Roe",
        "email": "jane@example.com",
        "password": "secret",
        "role": "patient",
        "phone": "555-1234567",
        "dob": "1990-06-15"
    }
    """
    data = request.get_json(silent=True) or {}
    if not all(data.get(field) for field in ("name", "email", "password")):
        return error("missing_required_fields", 400)

    role = data.get("role", "patient")
    if role not in ("patient", "provider"):
        return error("invalid_role", 400)

    if any(u["email"] == data["email"] for u in users.values()):
        return error("email_already_registered", 409)

    user_id = f"usr-{uuid.uuid4().hex[:8]}"
    user = {
        "id": user_id,
        "name": data["name"],
        "email": data["email"],
        "role": role,
        "phone": data.get("phone"),
        "dob": data.get("dob"),
        "password_hash": generate_password_hash(data["password"]),
    }
    users[user_id] = user

    if role == "provider":
        providers[user_id] = {
            "id": user_id,
            "name": data["name"],
            "email": data["email"],
            "speciality": data.get("speciality", config.SPECIALITIES[0]),
            "degree": "MBBS",
            "experience": data.get("experience", "1 Years"),
            "about": data.get("description", ""),
            "fees": data.get("appointmentFee", 50),
            "address": dict(config.DEFAULT_ADDRESS),
            "available": True,
        }

    logger.info("user_registered", user_id=user_id, role=role)
    return jsonify({"success": True, "user": public_user(user)}), 201


@app.route('/auth/login', methods=['POST'])
def login():
    """POST /auth/login - Exchange credentials for a bearer token."""
    data = request.get_json(silent=True) or {}
    user = next((u for u in users.values() if u["email"] == data.get("email")), None)

    if not user or not check_password_hash(user["password_hash"], data.get("password") or ""):
        return error("invalid_credentials", 401)

    token = f"tok_{uuid.uuid4().hex}"
    tokens[token] = user["id"]
    return jsonify({"success": True, "token": token, "user": public_user(user)})


@app.route('/auth/me', methods=['GET'])
def me():
    """GET /auth/me - Current user for the bearer token."""
    user = current_user()
    if not user:
        return error("unauthorized", 401)
    return jsonify(public_user(user))


@app.route('/appointments/providers', methods=['GET'])
def list_providers():
    """GET /appointments/providers - All registered providers."""
    return jsonify({
        "success": True,
        "providers": [public_provider(p) for p in providers.values()]
    })


@app.route('/appointments/available-slots/<provider_id>', methods=['GET'])
def available_slots(provider_id):
    """GET /appointments/available-slots/<id>?date=2025-01-15

    Wall-clock slots for that day minus the ones already booked.
    """
    if provider_id not in providers:
        return error("provider_not_found", 404)

    try:
        day = datetime.strptime(request.args.get("date", ""), "%Y-%m-%d").date()
    except ValueError:
        return error("invalid_date", 400)

    slots = [
        slot for slot in day_slots(day, datetime.now())
        if not is_booked(provider_id, slot.date_token, slot.time)
    ]

    return jsonify({
        "success": True,
        "date": day.isoformat(),
        "availableSlots": [
            {"datetime": slot.starts_at.isoformat(), "time": slot.time} for slot in slots
        ]
    })


@app.route('/appointments/provider-profile', methods=['GET', 'PUT'])
def provider_profile():
    """GET/PUT /appointments/provider-profile - The calling provider's profile."""
    user = current_user()
    if not user:
        return error("unauthorized", 401)
    if user["role"] != "provider":
        return error("forbidden", 403)

    profile = providers[user["id"]]

    if request.method == 'PUT':
        data = request.get_json(silent=True) or {}
        if "fees" in data:
            try:
                if float(data["fees"]) <= 0:
                    return error("invalid_fees", 400)
            except (TypeError, ValueError):
                return error("invalid_fees", 400)
        for field in PROFILE_FIELDS:
            if field in data:
                profile[field] = data[field]

    body = {k: v for k, v in profile.items() if k != "id"}
    return jsonify({"success": True, "profile": {"_id": profile["id"], **body}})


@app.route('/appointments/book', methods=['POST'])
def book_appointment():
    """POST /appointments/book - Book a slot for the calling patient.

    Expected JSON body:
    {
        "providerId": "usr-1a2b3c4d",
        "slotDate": "15_1_2025",
        "slotTime": "02:30 PM",
        "reason": "Headache"
    }
    """
    global appointment_counter

    user = current_user()
    if not user:
        return error("unauthorized", 401)

    data = request.get_json(silent=True) or {}
    if not all(data.get(field) for field in ("providerId", "slotDate", "slotTime")):
        return error("missing_required_fields", 400)

    provider = providers.get(data["providerId"])
    if not provider:
        return error("provider_not_found", 404)

    starts_at = parse_slot(data["slotDate"], data["slotTime"])
    if starts_at is None:
        return error("invalid_slot", 400)
    if starts_at <= datetime.now():
        return error("cannot_book_past_slot", 400)

    if is_booked(provider["id"], data["slotDate"], data["slotTime"]):
        return error("slot_already_booked", 409)

    appointment_counter += 1
    appointment = {
        "id": f"APPT-{appointment_counter}",
        "providerId": provider["id"],
        "providerName": provider["name"],
        "patientId": user["id"],
        "patientName": user["name"],
        "patientDob": user.get("dob"),
        "slotDate": data["slotDate"],
        "slotTime": data["slotTime"],
        "datetime": starts_at.isoformat(),
        "amount": provider["fees"],
        "status": "booked",
        "payment": False,
        "reason": data.get("reason"),
        "createdAt": datetime.now().isoformat(),
    }
    appointments.append(appointment)

    logger.info("appointment_booked", appointment_id=appointment["id"], provider_id=provider["id"])
    return jsonify({
        "success": True,
        "appointment": appointment,
        "message": "Appointment booked successfully"
    }), 201


@app.route('/appointments/my-appointments', methods=['GET'])
def my_appointments():
    """GET /appointments/my-appointments - The calling patient's appointments."""
    user = current_user()
    if not user:
        return error("unauthorized", 401)

    mine = [apt for apt in appointments if apt["patientId"] == user["id"]]
    return jsonify({"success": True, "appointments": mine, "total": len(mine)})


@app.route('/appointments/doctor-appointments', methods=['GET'])
def doctor_appointments():
    """GET /appointments/doctor-appointments - The calling provider's appointments."""
    user = current_user()
    if not user:
        return error("unauthorized", 401)
    if user["role"] != "provider":
        return error("forbidden", 403)

    mine = [apt for apt in appointments if apt["providerId"] == user["id"]]
    return jsonify({"success": True, "appointments": mine, "total": len(mine)})


def transition(appointment_id, owner_field, new_status):
    """Move a booked appointment owned by the caller to a terminal status."""
    user = current_user()
    if not user:
        return error("unauthorized", 401)

    appointment = find_appointment(appointment_id)
    if not appointment or appointment[owner_field] != user["id"]:
        return error("appointment_not_found", 404)

    if appointment["status"] != "booked":
        return error(f"appointment_already_{appointment['status']}", 400)

    appointment["status"] = new_status
    appointment[f"{new_status}At"] = datetime.now().isoformat()

    return jsonify({"success": True, "appointment": appointment})


@app.route('/appointments/<appointment_id>/cancel', methods=['PUT'])
def cancel_appointment(appointment_id):
    """PUT /appointments/APPT-1001/cancel - Patient cancels (status change, no delete)."""
    return transition(appointment_id, "patientId", "cancelled")


@app.route('/appointments/<appointment_id>/cancel-by-doctor', methods=['PUT'])
def cancel_by_doctor(appointment_id):
    """PUT /appointments/APPT-1001/cancel-by-doctor - Provider cancels."""
    return transition(appointment_id, "providerId", "cancelled")


@app.route('/appointments/<appointment_id>/complete', methods=['PUT'])
def complete_appointment(appointment_id):
    """PUT /appointments/APPT-1001/complete - Provider marks as completed."""
    return transition(appointment_id, "providerId", "completed")


@app.route('/documents/upload-request', methods=['POST'])
def request_upload():
    """POST /documents/upload-request - Reserve a document and hand out an upload URL."""
    user = current_user()
    if not user:
        return error("unauthorized", 401)

    data = request.get_json(silent=True) or {}
    if not data.get("fileName") or not data.get("contentType") or not data.get("size"):
        return error("missing_required_fields", 400)
    if data["contentType"] not in config.ALLOWED_DOCUMENT_TYPES:
        return error("invalid_file_type", 400)
    try:
        size = int(data["size"])
    except (TypeError, ValueError):
        return error("invalid_file_size", 400)
    if size <= 0:
        return error("invalid_file_size", 400)
    if size > config.MAX_DOCUMENT_BYTES:
        return error("file_too_large", 400)

    document_id = f"doc-{uuid.uuid4().hex[:8]}"
    documents[document_id] = {
        "id": document_id,
        "ownerId": user["id"],
        "fileName": data["fileName"],
        "contentType": data["contentType"],
        "size": size,
        "status": "pending",
    }

    return jsonify({
        "success": True,
        "documentId": document_id,
        "uploadUrl": f"{request.host_url}blobs/{document_id}"
    }), 201


@app.route('/blobs/<document_id>', methods=['PUT'])
def put_blob(document_id):
    """PUT /blobs/<id> - Stand-in for the pre-signed blob storage URL."""
    document = documents.get(document_id)
    if not document:
        return error("upload_not_found", 404)
    if request.content_type != document["contentType"]:
        return error("content_type_mismatch", 400)

    blobs[document_id] = request.get_data()
    return "", 200


@app.route('/documents/<document_id>/confirm', methods=['POST'])
def confirm_upload(document_id):
    """POST /documents/<id>/confirm - Finalize once the blob is stored."""
    user = current_user()
    if not user:
        return error("unauthorized", 401)

    document = documents.get(document_id)
    if not document or document["ownerId"] != user["id"]:
        return error("document_not_found", 404)
    if document_id not in blobs:
        return error("upload_incomplete", 400)

    document["size"] = len(blobs[document_id])
    document["status"] = "uploaded"
    return jsonify({"success": True, "document": document})


if __name__ == '__main__':
    setup_structured_logging()
    print("🏥 Mock Appointment API starting...")
    print(f"📍 Running on http://localhost:{config.MOCK_API_PORT}")
    app.run(debug=True, port=config.MOCK_API_PORT)
