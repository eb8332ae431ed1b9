"""
app.py
Streamlit admin console for a residents' association.
Run: streamlit run app.py
"""

from __future__ import annotations

from datetime import date

import pandas as pd
import streamlit as st

import api
import auth
import db
import listing
import queries
import utils
from config import AppConfig
from exceptions import AuthenticationError, BackendError, ConfigurationError, ValidationError
from listing import ID_CARD_STUDIO, MEMBERS_TABLE, RECENT_MEMBERS, IdCardFilter, ListConfig, SortOrder
from logs import setup_logging
from member_profile import LoadStatus, ProfileLoader, ProfileState, ProfileTab
from models import MEMBER_STATUSES, MEMBER_TYPES, PHONE_COUNTRY_CODES, PLACEHOLDER

st.set_page_config(page_title="Residents Console", layout="wide")

PAGES = ["Dashboard", "Members", "Member Profile", "ID Card Studio"]

SORT_LABELS = {
    "name": "Name",
    "status": "Status",
    "created_at": "Created",
    "id_card_created": "ID Card",
}


def init_once():
    # One backend client + auth session per browser session; nothing is stored
    # until all of it is ready, so a failed start is retried on the next rerun
    if "gateway" in st.session_state:
        return
    config = AppConfig.from_env()
    setup_logging(config.log_level, config.log_format)
    client = db.create_backend_client(config.backend)
    auth_session = auth.AuthSession(client, demo_mode=config.demo_mode).init()
    st.session_state.config = config
    st.session_state.auth = auth_session
    st.session_state.gateway = queries.CachedGateway(
        api.Gateway(client),
        identity=lambda: auth_session.user_id or "",
    )


def gateway() -> queries.CachedGateway:
    return st.session_state.gateway


def session() -> auth.AuthSession:
    return st.session_state.auth


def go_to(page: str, **state):
    for key, value in state.items():
        st.session_state[key] = value
    st.session_state.page = page
    st.rerun()


def logout() -> bool:
    try:
        session().sign_out()
    except AuthenticationError as exc:
        st.error(str(exc))
        return False
    return True


def login_screen():
    st.title("🔐 Admin Login")

    col1, _ = st.columns([1, 1])
    with col1:
        with st.form("login"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Sign in", type="primary")
        if submitted:
            try:
                session().sign_in(email.strip(), password)
            except AuthenticationError as exc:
                st.error(str(exc))
                return
            st.rerun()


# ---------- List view state ----------

def view_params(key: str, config: ListConfig) -> listing.ViewParams:
    if key not in st.session_state:
        page_size = st.session_state.config.members_page_size if config is MEMBERS_TABLE else config.page_size
        st.session_state[key] = config.initial_params().with_page_size(page_size)
    return st.session_state[key]


def clear_filters(key: str):
    # runs before the next rerun, so the filter widgets can be reset too
    st.session_state[key] = st.session_state[key].clear_filters()
    st.session_state[f"{key}_status"] = "All"
    st.session_state[f"{key}_id_card"] = IdCardFilter.ANY


def list_controls(key: str, config: ListConfig) -> listing.ViewParams:
    """Search/filter/sort widgets; returns the updated params for this rerun."""
    params = view_params(key, config)
    cols = st.columns([3, 2, 2, 2])

    if config.searchable:
        search = cols[0].text_input("Search name, email, member ID", value=params.search, key=f"{key}_search")
        if search != params.search:
            params = params.with_search(search)

    if config.status_filter:
        options = ["All"] + list(MEMBER_STATUSES)
        current = params.status or "All"
        status = cols[1].selectbox("Status", options, index=options.index(current), key=f"{key}_status")
        if status != current:
            params = params.with_status(None if status == "All" else status)

    if config.id_card_filter:
        labels = {IdCardFilter.ANY: "All", IdCardFilter.CREATED: "Created", IdCardFilter.NOT_CREATED: "Not created"}
        choices = list(labels)
        chosen = cols[2].selectbox(
            "ID card",
            choices,
            index=choices.index(params.id_card),
            format_func=labels.get,
            key=f"{key}_id_card",
        )
        if chosen != params.id_card:
            params = params.with_id_card(chosen)

    if params.status or params.id_card != IdCardFilter.ANY:
        cols[2].button("Clear", key=f"{key}_clear", on_click=clear_filters, args=(key,))

    if len(config.sort_keys) > 1:
        with cols[3]:
            st.caption("Sort by")
            sort_cols = st.columns(len(config.sort_keys))
            for col, sort_key in zip(sort_cols, config.sort_keys):
                arrow = ""
                if sort_key == params.sort_key:
                    arrow = " ↑" if params.sort_order == SortOrder.ASC else " ↓"
                if col.button(f"{SORT_LABELS[sort_key]}{arrow}", key=f"{key}_sort_{sort_key}"):
                    params = params.toggle_sort(sort_key)

    st.session_state[key] = params
    return params


def pager(key: str, config: ListConfig, page: listing.ListPage):
    c1, c2, c3, c4 = st.columns([3, 1, 1, 1])
    c1.caption(f"Showing {page.window_start}–{page.window_end} of {page.total_count}")
    params = st.session_state[key]
    if c2.button("◀", disabled=not page.has_prev, key=f"{key}_prev"):
        st.session_state[key] = params.with_page(page.current_page - 1)
        st.rerun()
    c3.caption(f"Page {page.current_page} of {page.total_pages}")
    if c4.button("▶", disabled=not page.has_next, key=f"{key}_next"):
        st.session_state[key] = params.with_page(page.current_page + 1)
        st.rerun()
    if len(config.page_size_options) > 1:
        sizes = sorted(set(config.page_size_options) | {params.page_size})
        size = st.selectbox(
            "Rows per page",
            sizes,
            index=sizes.index(params.page_size),
            key=f"{key}_page_size",
        )
        if size != params.page_size:
            st.session_state[key] = params.with_page_size(size)
            st.rerun()


def render_page(key: str, config: ListConfig, members) -> listing.ListPage:
    params = st.session_state[key]
    page = listing.build_page(members, params, config)
    # never keep a page number past the end of the current result
    st.session_state[key] = params.with_page(page.current_page)
    return page


def members_frame(members) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Member ID": m.member_id,
                "Name": m.name,
                "Email": m.email,
                "Mobile": utils.format_phone_display(m.phone_country_code, m.phone),
                "Unit": m.unit,
                "Building": m.building,
                "Type": m.member_type,
                "Status": m.status,
                "ID Card": "Yes" if m.id_card_created else "No",
                "Created": utils.format_date(m.created_at),
            }
            for m in members
        ]
    )


# ---------- Pages ----------

def dashboard_page():
    st.header("📊 Dashboard")

    stats = queries.load(gateway().get_dashboard_stats)
    if not stats.ok:
        st.error(stats.error)
    else:
        s = stats.data
        c1, c2, c3, c4, c5 = st.columns(5)
        c1.metric("All members", f"{s.total_members:,}")
        c2.metric("Active", f"{s.active_count:,}")
        c3.metric("Inactive", f"{s.inactive_count:,}")
        c4.metric("ID created", f"{s.id_created_count:,}")
        c5.metric("Revenue (completed)", f"{s.total_revenue:,.2f}")
        st.bar_chart(
            pd.DataFrame(
                {"members": [s.id_created_count, s.id_not_created_count]},
                index=["ID created", "Not created"],
            )
        )

    st.divider()

    st.subheader("Recent members")
    members = queries.load(gateway().list_members)
    if not members.ok:
        st.error(members.error)
        return
    view_params("recent_params", RECENT_MEMBERS)
    page = render_page("recent_params", RECENT_MEMBERS, members.data)
    if page.items:
        st.dataframe(members_frame(page.items), use_container_width=True, hide_index=True)
        for m in page.items:
            if st.button(f"View {m.name}", key=f"recent_{m.id}"):
                go_to("Member Profile", profile_member_id=m.id)
    else:
        st.caption("No members yet.")


def member_form(existing=None):
    if existing:
        st.subheader(f"✏️ Edit Member ({existing.member_id})")
    else:
        st.subheader("➕ Add Member")

    values = utils.member_form_defaults(existing)
    codes = [c[0] for c in PHONE_COUNTRY_CODES]
    form_key = f"member_form_{existing.id if existing else 'new'}"

    with st.form(form_key, clear_on_submit=not existing):
        col1, col2, col3 = st.columns(3)
        with col1:
            name = st.text_input("Name", value=values["name"])
            email = st.text_input("Email", value=values["email"])
        with col2:
            phone_country_code = st.selectbox(
                "Country code",
                options=list(range(len(PHONE_COUNTRY_CODES))),
                index=codes.index(values["phone_country_code"]) if values["phone_country_code"] in codes else 0,
                format_func=lambda i: f"{PHONE_COUNTRY_CODES[i][2]} {PHONE_COUNTRY_CODES[i][0]} {PHONE_COUNTRY_CODES[i][1]}",
            )
            phone = st.text_input("Mobile (optional)", value=values["phone"])
            unit = st.text_input("Unit", value=values["unit"])
        with col3:
            building = st.text_input("Building", value=values["building"])
            member_type = st.selectbox("Type", MEMBER_TYPES, index=MEMBER_TYPES.index(values["member_type"]))
            status = st.selectbox("Status", MEMBER_STATUSES, index=MEMBER_STATUSES.index(values["status"]))
        submitted = st.form_submit_button("Save", type="primary")

    if not submitted:
        return

    form = {
        "name": name,
        "email": email,
        "phone": phone,
        "phone_country_code": PHONE_COUNTRY_CODES[phone_country_code][0],
        "unit": unit,
        "building": building,
        "member_type": member_type,
        "status": status,
    }
    try:
        if existing:
            gateway().update_member(existing.id, utils.prepare_member_update(form))
            st.session_state.edit_member_id = None
            st.toast("Member updated successfully")
        else:
            gateway().create_member(utils.prepare_member_create(form))
            st.toast("Member added successfully")
    except ValidationError as exc:
        for field, message in exc.errors.items():
            st.error(f"{field}: {message}")
        return
    except BackendError as exc:
        st.error(exc.message)
        st.toast(f"Failed to save member: {exc.message}")
        return
    st.rerun()


def members_page():
    st.header("👥 Members")

    result = queries.load(gateway().list_members)
    if not result.ok:
        st.error(result.error)
        return
    members = result.data

    params = list_controls("members_params", MEMBERS_TABLE)
    page = render_page("members_params", MEMBERS_TABLE, members)

    if page.total_count == 0:
        if params.search.strip() or params.status or params.id_card != IdCardFilter.ANY:
            st.caption("No residents found. Try adjusting your search or filters to see more results.")
        else:
            st.caption("No residents found.")
    else:
        st.dataframe(members_frame(page.items), use_container_width=True, hide_index=True)
    pager("members_params", MEMBERS_TABLE, page)

    # export everything that matches, not only the visible page
    matching = listing.sort_members(listing.filter_members(members, params, MEMBERS_TABLE), params, MEMBERS_TABLE)
    if matching:
        st.download_button(
            f"Export {len(matching)} member(s) as CSV",
            data=utils.members_to_csv_bytes(matching),
            file_name=f"members-export-{date.today().isoformat()}.csv",
            mime="text/csv",
        )

    st.divider()

    colA, colB = st.columns([1, 2])
    with colA:
        st.subheader("Select member")
        options = {f"{m.name} ({m.member_id})": m for m in page.items}
        chosen = st.selectbox("Member", options=["(none)"] + list(options))

    with colB:
        if chosen != "(none)":
            m = options[chosen]
            st.subheader("Member actions")
            c1, c2, c3, c4 = st.columns(4)
            with c1:
                if st.button("View profile"):
                    go_to("Member Profile", profile_member_id=m.id)
            with c2:
                if st.button("Edit"):
                    st.session_state.edit_member_id = m.id
                    st.rerun()
            with c3:
                label = "View ID card" if m.id_card_created else "Create ID"
                if st.button(label):
                    go_to("ID Card Studio", studio_member_id=m.id)
            with c4:
                delete_confirm = st.checkbox("Confirm delete", value=False, key="del_confirm")
                if st.button("Delete", type="secondary", disabled=not delete_confirm):
                    try:
                        gateway().delete_member(m.id)
                    except BackendError as exc:
                        st.error(exc.message)
                        st.toast(f"Failed to remove member: {exc.message}")
                    else:
                        st.toast("Member removed successfully")
                        st.rerun()

    st.divider()

    editing = st.session_state.get("edit_member_id")
    if editing:
        existing = next((m for m in members if m.id == editing), None)
        if existing:
            member_form(existing=existing)
        if st.button("Cancel edit"):
            st.session_state.edit_member_id = None
            st.rerun()
    else:
        member_form(existing=None)


# profile section -> (title, [(column label, record attribute)])
SECTION_COLUMNS = {
    "vehicles": (
        "Vehicles",
        [("Name", "vehicle_name"), ("Type", "vehicle_type"), ("Plate", "license_plate"), ("Make", "make"), ("Model", "model")],
    ),
    "access_logs": (
        "Access logs",
        [("When", "accessed_at"), ("Location", "location"), ("Method", "access_method"), ("Status", "status")],
    ),
    "payments": (
        "Payments",
        [("Type", "payment_type"), ("Amount", "amount"), ("Status", "status"), ("Due", "due_date"), ("Paid", "paid_date")],
    ),
    "documents": (
        "Documents",
        [("Name", "document_name"), ("Type", "document_type"), ("Uploaded", "uploaded_at"), ("Expires", "expires_at")],
    ),
}


def sub_collection_table(title: str, collection, columns):
    st.subheader(f"{title} ({collection.count})")
    if collection.status == LoadStatus.ERROR:
        st.error(collection.error)
    elif collection.count == 0:
        st.caption(f"No {title.lower()} yet.")
    else:
        rows = [{label: getattr(item, attr) for label, attr in columns} for item in collection.items]
        st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)


def profile_page():
    st.header("🪪 Member Profile")

    member_id = st.session_state.get("profile_member_id")
    if not member_id:
        st.info("Pick a member on the Members page.")
        return

    progress = st.empty()

    def show_progress(p):
        sections = (p.vehicles, p.payments, p.access_logs, p.documents)
        settled = sum(s.status != LoadStatus.LOADING for s in sections)
        progress.caption(f"Loaded {settled} of {len(sections)} sections...")

    with st.spinner("Loading member..."):
        profile = ProfileLoader(gateway()).load(member_id, on_update=show_progress)
    progress.empty()

    if profile.state == ProfileState.NOT_FOUND:
        st.info("Member not found.")
        if st.button("Back to Members"):
            go_to("Members")
        return
    if profile.state == ProfileState.FAILED:
        st.error(profile.error)
        return

    m = profile.member
    c1, c2 = st.columns([1, 5])
    with c1:
        if m.avatar_url:
            st.image(m.avatar_url, width=96)
        else:
            st.markdown(f"## {profile.initials}")
    with c2:
        st.subheader(m.name)
        st.caption(" • ".join(x for x in (f"Unit {m.unit}", m.building, m.member_type, f"ID {m.member_id}") if x))

    k1, k2, k3, k4 = st.columns(4)
    k1.metric("Vehicles", profile.vehicles.count)
    k2.metric("Payments", profile.payments.count)
    k3.metric("Access events", profile.access_logs.count)
    k4.metric("Last access", profile.last_access_label())

    for tab, container in zip(ProfileTab, st.tabs([t.value for t in ProfileTab])):
        with container:
            if tab == ProfileTab.OVERVIEW:
                st.write(f"**Email:** {m.email}")
                st.write(f"**Mobile:** {utils.format_phone_display(m.phone_country_code, m.phone)}")
                st.write(f"**Emergency contact:** {profile.emergency_contact}")
                st.write(f"**Status:** {m.status}")
            elif tab == ProfileTab.PAYMENTS:
                st.metric("Completed total", f"{profile.completed_payments_total:,.2f}")
            for name, collection in profile.tab_collections(tab):
                title, columns = SECTION_COLUMNS[name]
                sub_collection_table(title, collection, columns)

    st.divider()
    c1, c2, c3 = st.columns(3)
    with c1:
        if st.button("View ID card" if m.id_card_created else "Create ID"):
            go_to("ID Card Studio", studio_member_id=m.id)
    with c2:
        if st.button("Edit", key="profile_edit"):
            st.session_state.edit_member_id = m.id
            st.rerun()
    with c3:
        confirm = st.checkbox("Confirm delete", value=False, key="profile_del_confirm")
        if st.button("Delete", type="secondary", disabled=not confirm, key="profile_delete"):
            try:
                gateway().delete_member(m.id)
            except BackendError as exc:
                st.error(exc.message)
                st.toast(f"Failed to remove member: {exc.message}")
            else:
                st.toast("Member removed successfully")
                go_to("Members", profile_member_id=None)

    if st.session_state.get("edit_member_id") == m.id:
        member_form(existing=m)
        if st.button("Cancel edit", key="profile_cancel_edit"):
            st.session_state.edit_member_id = None
            st.rerun()


def id_card_studio_page():
    st.header("🎫 ID Card Studio")
    st.caption("View and manage digital ID cards for members with an issued card.")

    member_id = st.session_state.get("studio_member_id")
    if member_id:
        selected = queries.load(gateway().get_member, member_id)
        if not selected.ok:
            st.error(selected.error)
        elif selected.data is None:
            st.info("Member not found.")
        else:
            m = selected.data
            left, right = st.columns([2, 1])
            with left:
                st.subheader("Credential details")
                st.text_input("Member name", value=m.name, disabled=True)
                st.text_input("Unit", value=f"Unit {m.unit} ({m.member_type})", disabled=True)
                if m.id_card_created:
                    st.success("ID card issued.")
                elif st.button("Issue mobile pass", type="primary"):
                    try:
                        gateway().issue_id_card(m.id)
                    except BackendError as exc:
                        st.error(exc.message)
                    else:
                        st.toast("ID card issued")
                        st.rerun()
            with right:
                st.subheader("Live preview")
                st.markdown(f"### {utils.initials(m.name)}")
                st.write(f"**{m.name}**")
                st.caption(f"Unit {m.unit} ({m.member_type})")
        if st.button("Back to ID Card Studio"):
            go_to("ID Card Studio", studio_member_id=None)

    st.divider()
    st.subheader("Members with ID card")

    result = queries.load(gateway().list_members)
    if not result.ok:
        st.error(result.error)
        return
    list_controls("studio_params", ID_CARD_STUDIO)
    page = render_page("studio_params", ID_CARD_STUDIO, result.data)
    if not page.items:
        st.caption("No members with an ID card match your search or filters.")
        return
    for offset, m in enumerate(page.items):
        c1, c2, c3 = st.columns([4, 1, 1])
        c1.write(f"#{page.window_start + offset} **{m.name}** · Unit {m.unit} • {m.member_type} · {m.status or PLACEHOLDER}")
        if c2.button("View card", key=f"card_{m.id}"):
            go_to("ID Card Studio", studio_member_id=m.id)
        if c3.button("View profile", key=f"profile_{m.id}"):
            go_to("Member Profile", profile_member_id=m.id)
    pager("studio_params", ID_CARD_STUDIO, page)


def main_app():
    st.sidebar.title("🏢 Residents Console")
    st.sidebar.caption(f"Logged in as: {session().user_email}")

    if "page" not in st.session_state:
        st.session_state.page = "Dashboard"
    st.session_state.page = st.sidebar.radio("Navigate", PAGES, index=PAGES.index(st.session_state.page))

    if st.sidebar.button("Logout") and logout():
        st.rerun()

    if st.session_state.page == "Dashboard":
        dashboard_page()
    elif st.session_state.page == "Members":
        members_page()
    elif st.session_state.page == "Member Profile":
        profile_page()
    elif st.session_state.page == "ID Card Studio":
        id_card_studio_page()


# --------- App entry ---------

def run():
    try:
        init_once()
    except (ConfigurationError, AuthenticationError) as exc:
        st.error(str(exc))
        st.stop()

    if session().loading:
        st.info("Checking session...")
        st.stop()

    if not session().is_authenticated:
        login_screen()
        return

    main_app()


if __name__ == "__main__":
    run()
