from collections.abc import MutableMapping

import streamlit as st

from docstron.client import ClientState, TransportError, UploadClient

SESSION_KEY = "upload_client"


def _client() -> UploadClient:
    if SESSION_KEY not in st.session_state:
        st.session_state[SESSION_KEY] = UploadClient()
    return st.session_state[SESSION_KEY]


def _reset_state() -> None:
    _client().reset()
    for key in ("result_bytes", "selected_id"):
        if key in st.session_state:
            del st.session_state[key]
    # Bump the uploader key to clear any previously uploaded file widget state
    st.session_state["upload_key"] = st.session_state.get("upload_key", 0) + 1


def sync_upload(client: UploadClient, uploaded, state: MutableMapping) -> None:
    """Mirror the uploader widget into the client.

    Streamlit reruns the script on every interaction, so only a new file is
    selected again. A cleared widget drops the candidate.
    """
    if uploaded is None:
        if client.candidate is not None or client.error:
            client.reset()
        state.pop("selected_id", None)
        state.pop("result_bytes", None)
        return
    selected_id = getattr(uploaded, "file_id", None) or (uploaded.name, uploaded.size)
    if state.get("selected_id") == selected_id:
        return
    state["selected_id"] = selected_id
    state.pop("result_bytes", None)
    client.select(uploaded.name, uploaded.getvalue(), uploaded.type)


def main() -> None:
    st.set_page_config(page_title="Docstron", page_icon="📄", layout="centered")
    st.title("📄 Docstron")
    st.caption("Seamlessly transform your documents, PDF to DOCX, and back, in a snap!")

    client = _client()

    if st.button("Restart", type="secondary"):
        _reset_state()
        st.rerun()

    if "upload_key" not in st.session_state:
        st.session_state["upload_key"] = 0
    uploaded = st.file_uploader(
        "Drag & Drop your file here or click to select",
        type=["pdf", "docx"],
        key=f"uploader-{st.session_state['upload_key']}",
    )
    sync_upload(client, uploaded, st.session_state)

    if client.candidate is not None:
        st.markdown(f"**Selected File:** {client.candidate.name}")

    if client.error:
        st.error(client.error)

    if client.can_submit and st.button("Convert", type="primary"):
        bar = st.progress(0, text="Uploading...")
        with st.spinner("Converting..."):
            client.submit(on_progress=lambda pct: bar.progress(pct, text=f"Uploading... {pct}%"))
        st.rerun()

    if client.state == ClientState.CONVERTED and client.download_url:
        st.success("Conversion complete!")
        name = client.download_name
        if "result_bytes" not in st.session_state:
            try:
                st.session_state["result_bytes"] = client.fetch_result()
            except TransportError:
                st.session_state["result_bytes"] = None
        data = st.session_state["result_bytes"]
        if data is not None:
            st.download_button(label=f"Download {name}", data=data, file_name=name)
        else:
            # Link may already have expired; the server keeps results only briefly.
            st.markdown(f'<a href="{client.download_url}" download="{name}">Download {name}</a>', unsafe_allow_html=True)
        st.caption(f"API base: {client.api_base}")


if __name__ == "__main__":
    main()
