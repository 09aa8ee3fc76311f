from app.constants.activity_codes import ActivityCode


ACTIVITY_TEMPLATES = {
    # ---------------- CATALOG ----------------
    ActivityCode.CREATE_TAG:
        "{actor_role} ({actor_email}) created {inventory_type} tag {target_name}",

    ActivityCode.UPDATE_TAG:
        "{actor_role} ({actor_email}) updated tag {target_name}: {changes}",

    ActivityCode.CREATE_UNIT:
        "{actor_role} ({actor_email}) created {inventory_type} unit {target_name}",

    ActivityCode.UPDATE_UNIT:
        "{actor_role} ({actor_email}) updated unit {target_name}: {changes}",

    # ---------------- LOTS ----------------
    ActivityCode.CREATE_LOT:
        "{actor_role} ({actor_email}) created lot {lot_code} ({target_name}) "
        "with {quantity} {unit}",

    ActivityCode.UPDATE_LOT:
        "{actor_role} ({actor_email}) updated lot {lot_code}: {changes}",

    ActivityCode.ARCHIVE_LOT:
        "{actor_role} ({actor_email}) archived lot {lot_code} "
        "at {quantity} available (locked batches: {batch_ids})",

    ActivityCode.UNARCHIVE_LOT:
        "{actor_role} ({actor_email}) unarchived lot {lot_code} "
        "(locked batches: {batch_ids})",

    ActivityCode.DELETE_LOT:
        "{actor_role} ({actor_email}) deleted lot {lot_code} ({target_name}) "
        "(locked batches: {batch_ids})",

    ActivityCode.LOT_MOVEMENT:
        "{actor_role} ({actor_email}) recorded {kind} of {quantity} {unit} "
        "on lot {lot_code} for {movement_date} "
        "(ref: {reference_type}:{reference_id})",

    # ---------------- ANALYTICS ----------------
    ActivityCode.SET_LOW_STOCK_THRESHOLD:
        "{actor_role} ({actor_email}) set low-stock threshold of tag {target_name} to {threshold}",

    ActivityCode.DELETE_LOW_STOCK_THRESHOLD:
        "{actor_role} ({actor_email}) removed low-stock threshold of tag {target_name}",
}
