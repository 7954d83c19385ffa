from conftest import InMemoryStore, add_alert, add_report
from khoj.lambda_stream import handler, touched_areas


def _record(new=None, old=None, source="aws:dynamodb"):
    ddb = {}
    if new:
        ddb["NewImage"] = {"district": {"S": new[0]}, "upazila": {"S": new[1]}}
    if old:
        ddb["OldImage"] = {"district": {"S": old[0]}, "upazila": {"S": old[1]}}
    return {"eventSource": source, "dynamodb": ddb}


def test_touched_areas_reads_new_and_old_images():
    event = {"Records": [
        _record(new=("Dhaka", "Savar")),
        _record(old=("Khulna", "Rupsa")),
        _record(new=("Dhaka", "Savar")),
        _record(new=("Sylhet", "Beanibazar"), source="aws:sqs"),
    ]}
    assert touched_areas(event) == {("Dhaka", "Savar"), ("Khulna", "Rupsa")}


def test_handler_recomputes_each_area_once():
    store = InMemoryStore()
    add_alert(store, "a1")
    add_report(store, "r1", upazila="Dhamrai")

    result = handler(
        {"Records": [_record(new=("Dhaka", "Savar")), _record(new=("Dhaka", "Dhamrai")),
                     _record(new=("Dhaka", "Savar"))]},
        None,
        store=store,
    )

    assert result == {"areas_recalculated": 2}
    assert store.area_writes == 2
    assert store.get_area_statistics("Dhaka", "Dhamrai")["statistics"]["totalReports"] == 1
