from wastewatch.crud import DataAccess
from wastewatch.schemas import ComplaintRecord, ProfileUpdate, UserRecord


def test_insert_attaches_caller_identity(db):
    dal = DataAccess(db, identity="citizen7")
    row = dal.insert("complaints", {
        "title": "Dumped debris",
        "description": "Construction debris dumped on the footpath",
        "area": "Satellite",
        "priority": "high",
        "user_id": "someone-else",
    })
    assert row is not None
    assert row["user_id"] == "citizen7"
    assert row["status"] == "pending"
    assert len(row["id"]) == 36
    assert row["created_at"] is not None


def test_insert_returns_none_on_error(dal):
    # title and description are required
    assert dal.insert("complaints", {"user_id": "citizen1"}) is None
    # The session is usable again after the failed write
    assert dal.fetch("complaints") == []


def test_insert_without_return_data(dal):
    assert dal.insert("users", {"clerk_id": "u1", "email": "u1@example.com"}, return_data=False) is None
    assert dal.fetch("users", columns="clerk_id") == [{"clerk_id": "u1"}]


def test_fetch_filters_orders_and_limits(make_complaint, dal):
    make_complaint(user_id="alice", title="A", priority="low")
    make_complaint(user_id="alice", title="B", priority="high")
    make_complaint(user_id="bob", title="C", priority="high")

    rows = dal.fetch("complaints", columns="title, priority", filter={"user_id": "alice"}, order=("title", True))
    assert rows == [{"title": "A", "priority": "low"}, {"title": "B", "priority": "high"}]

    rows = dal.fetch("complaints", columns=["title"], order=("title", False), limit=2)
    assert [r["title"] for r in rows] == ["C", "B"]

    rows = dal.fetch("complaints", filter={"user_id": "alice", "priority": "high"})
    assert [r["title"] for r in rows] == ["B"]


def test_fetch_single(make_complaint, dal):
    complaint_id = make_complaint(title="Only one")
    row = dal.fetch("complaints", filter={"id": complaint_id}, single=True)
    assert row["title"] == "Only one"
    assert dal.fetch("complaints", filter={"id": "missing"}, single=True) is None


def test_fetch_errors_return_none(make_complaint, dal):
    make_complaint()
    make_complaint()
    assert dal.fetch("no_such_table") is None
    assert dal.fetch("complaints", filter={"no_such_column": 1}) is None
    assert dal.fetch("complaints", columns="title,bogus") is None
    # More than one row for a single lookup
    assert dal.fetch("complaints", filter={"user_id": "citizen1"}, single=True) is None


def test_update_returns_updated_row(make_complaint, dal):
    complaint_id = make_complaint()
    before = dal.fetch("complaints", filter={"id": complaint_id}, single=True)

    row = dal.update("complaints", complaint_id, {"status": "in-progress", "assigned_to": "officer1"})

    assert row["status"] == "in-progress"
    assert row["assigned_to"] == "officer1"
    assert row["updated_at"] >= before["updated_at"]


def test_update_missing_row_is_none(dal):
    assert dal.update("complaints", "missing", {"status": "resolved"}) is None


def test_update_rejects_unknown_columns(make_complaint, dal):
    complaint_id = make_complaint()
    assert dal.update("complaints", complaint_id, {"colour": "red"}) is None
    assert dal.get("complaints", complaint_id).status == "pending"


def test_update_with_model_writes_only_set_fields(make_user, dal):
    make_user("u1", first_name="Asha", area="bopal")
    row = dal.update("users", "u1", ProfileUpdate(first_name="Asha R"), id_column="clerk_id")
    assert row["first_name"] == "Asha R"
    assert row["area"] == "bopal"


def test_update_dict_writes_explicit_null(make_user, dal):
    make_user("u1", area="bopal")
    row = dal.update("users", "u1", {"area": None}, id_column="clerk_id")
    assert row["area"] is None


def test_delete(make_complaint, dal):
    complaint_id = make_complaint()
    assert dal.delete("complaints", complaint_id) is True
    assert dal.delete("complaints", complaint_id) is False
    assert dal.delete("no_such_table", complaint_id) is False


def test_claim_only_unassigned(make_complaint, dal):
    free = make_complaint(area="Ghatlodia")
    taken = make_complaint(assigned_to="officer2", status="in-progress")

    assert dal.claim("complaints", free, "officer1") is True
    assert dal.claim("complaints", taken, "officer1") is False

    claimed = dal.get("complaints", free)
    assert claimed.assigned_to == "officer1"
    assert claimed.status == "in-progress"
    assert claimed.area == "Ghatlodia"
    assert dal.get("complaints", taken).assigned_to == "officer2"


def test_records_are_typed_and_skip_malformed(make_complaint, dal):
    good = make_complaint()
    make_complaint(priority="urgent")

    records = dal.records("complaints")

    assert [r.id for r in records] == [good]
    assert isinstance(records[0], ComplaintRecord)
    assert records[0].coordinates.lat == 23.01


def test_records_on_error_is_empty(dal):
    assert dal.records("complaints", filter={"bogus": 1}) == []


def test_get_by_alternate_column(make_user, dal):
    make_user("officer1", role="officer")
    user = dal.get("users", "officer1", id_column="clerk_id")
    assert isinstance(user, UserRecord)
    assert user.role == "officer"
    assert dal.get("users", "nobody", id_column="clerk_id") is None
