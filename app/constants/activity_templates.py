from app.constants.activity_codes import ActivityCode


ACTIVITY_TEMPLATES = {
    # ---------------- CATALOG ----------------
    ActivityCode.CREATE_ITEM:
        "{actor} created {category} item {target_name}",

    ActivityCode.ADJUST_STOCK:
        "{actor} adjusted stock of {target_name} by {quantity_change}: {reason}",

    ActivityCode.STOCK_MOVEMENT:
        "{actor} performed stock movement {movement_type} of "
        "{quantity_change} units for item {item_id} "
        "(balance {balance_after}, ref: {reference_type}:{reference_id})",

    # ---------------- SALES ORDERS ----------------
    ActivityCode.CREATE_SALES_ORDER:
        "{actor} created sales order {target_name} with {line_count} line(s)",

    ActivityCode.CONFIRM_SALES_ORDER:
        "{actor} confirmed sales order {target_name}: "
        "{processed_items} line(s), {total_backordered} unit(s) backordered",

    ActivityCode.REVERT_SALES_ORDER:
        "{actor} reverted sales order {target_name} to draft: "
        "{restored_quantity} unit(s) released",

    ActivityCode.CANCEL_SALES_ORDER:
        "{actor} cancelled sales order {target_name}",

    # ---------------- DELIVERY ORDERS ----------------
    ActivityCode.CREATE_DELIVERY_ORDER:
        "{actor} created delivery order {target_name} for sales order {order_number}",

    ActivityCode.UPDATE_DELIVERY_ORDER:
        "{actor} updated delivery order {target_name}: {changes}",

    ActivityCode.DELIVER_DELIVERY_ORDER:
        "{actor} marked delivery order {target_name} as delivered",

    ActivityCode.CANCEL_DELIVERY_ORDER:
        "{actor} cancelled delivery order {target_name}",

    # ---------------- PURCHASE ORDERS ----------------
    ActivityCode.CREATE_PURCHASE_ORDER:
        "{actor} created purchase order {target_name} with {line_count} line(s)",

    ActivityCode.RECEIVE_PURCHASE_ORDER:
        "{actor} received purchase order {target_name}: "
        "{updated_items} item(s) restocked, {cleared_backorders} backorder(s) cleared",

    ActivityCode.CANCEL_PURCHASE_ORDER:
        "{actor} cancelled purchase order {target_name}",

    ActivityCode.CLEAR_BACKORDER:
        "{actor} cleared {quantity} backordered unit(s) on sales order item "
        "{sales_order_item_id} from {target_name}",
}
