"""
Main NiceGUI application for the call flow editor.

Hosts one FlowEditor per page: the canvas is a ui.echart driven by
GraphVisualizer, pointer and keyboard events go through the handlers in
callflow.edit.handlers, and the side panels cover the node palette, flow
settings, templates and saving.
"""

import json
import logging
import sys

from dotenv import load_dotenv
from nicegui import ui

from callflow.collaborators import (
    MemoryFlowSaver,
    StaticBuyerProvider,
    StaticCampaignProvider,
)
from callflow.config import get_editor_settings
from callflow.edit.controller import LABEL_CONNECTION, EditingLabel
from callflow.edit.handlers import NiceGuiNotifier, POINTER_EVENT_KEYS, setup_edit_handlers
from callflow.editor import FlowEditor
from callflow.graph_viz import CANVAS_HEIGHT, CANVAS_WIDTH, GraphVisualizer
from callflow.node_types import get_node_type_registry
from callflow.templates import ALL_CATEGORIES, TemplateLibrary, get_template_library

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger(__name__)

# Demo reference data for the standalone app
DEMO_BUYERS = [
    {'id': 1, 'name': 'Acme Insurance', 'phoneNumber': '+15550100'},
    {'id': 2, 'name': 'Bright Solar', 'email': 'calls@brightsolar.example'},
]
DEMO_CAMPAIGNS = [
    {'id': 1, 'name': 'Auto Insurance'},
    {'id': 2, 'name': 'Home Solar'},
]

saved_flows = MemoryFlowSaver()


def _config_field(editor: FlowEditor, node_type: str, key: str, value, values: dict):
    """Render one config field and write changes into `values`."""
    spec = get_node_type_registry().get_spec(node_type)
    choices = spec.choices.get(key) if spec else None

    def set_value(new_value):
        values[key] = new_value

    if node_type == 'action' and key == 'buyerId':
        options = {None: 'No buyer'}
        options.update({b['id']: b.get('name', str(b['id'])) for b in editor.buyer_options()})
        ui.select(options, value=value, label=key,
                  on_change=lambda e: set_value(e.value)).classes('w-full')
    elif choices:
        ui.select(list(choices), value=value, label=key,
                  on_change=lambda e: set_value(e.value)).classes('w-full')
    elif isinstance(value, bool):
        ui.switch(key, value=value, on_change=lambda e: set_value(e.value))
    elif isinstance(value, (int, float)):
        ui.number(key, value=value, on_change=lambda e: set_value(e.value)).classes('w-full')
    elif isinstance(value, (dict, list)):
        def set_json(e):
            try:
                values[key] = json.loads(e.value)
            except json.JSONDecodeError:
                logger.debug(f"Config field {key} is not valid JSON yet")
        ui.textarea(key, value=json.dumps(value, indent=2),
                    on_change=set_json).props('outlined').classes('w-full font-mono text-xs')
    else:
        ui.input(key, value='' if value is None else str(value),
                 on_change=lambda e: set_value(e.value)).classes('w-full')


@ui.page('/')
def main_page():
    ui.query('body').style('margin: 0; padding: 0; overflow: hidden;')

    settings = get_editor_settings()
    editor = FlowEditor.new(
        settings=settings,
        saver=saved_flows,
        notifier=NiceGuiNotifier(),
        buyers=StaticBuyerProvider(DEMO_BUYERS),
        campaigns=StaticCampaignProvider(DEMO_CAMPAIGNS),
    )
    visualizer = GraphVisualizer()
    library = get_template_library() if settings.templates_path is None else TemplateLibrary(settings.templates_path)

    state = {
        'editor': editor,
        'chart': None,
        'label_input': None,
        'settings_inputs': {},
    }

    def current_editor() -> FlowEditor:
        return state['editor']

    def get_current_options():
        ed = current_editor()
        return visualizer.generate_echarts(
            ed.store,
            ed.viewport,
            selected_id=ed.interaction.selected_node_id,
            connection_source_id=ed.interaction.connection_source_id,
        )

    def refresh_chart_ui():
        if state['chart']:
            state['chart'].options.clear()
            state['chart'].options.update(get_current_options())
            state['chart'].update()
        zoom_label.text = f"{int(current_editor().viewport.zoom * 100)}%"
        sync_label_editor()

    def sync_label_editor():
        label_input = state['label_input']
        if label_input is None:
            return
        machine_state = current_editor().interaction.state
        if isinstance(machine_state, EditingLabel):
            label_input.label = 'Connection label' if machine_state.target_kind == LABEL_CONNECTION else 'Node label'
            if label_input.value != machine_state.buffer:
                label_input.value = machine_state.buffer
            label_card.set_visibility(True)
            label_input.run_method('focus')
        else:
            label_card.set_visibility(False)

    # --- Node config dialog ---

    def open_config_dialog(node_id: str):
        ed = current_editor()
        node = ed.store.get_node(node_id)
        values = {}

        with ui.dialog() as dialog, ui.card().classes('w-[480px] max-h-[85vh] overflow-y-auto'):
            ui.label(f"Configure {get_node_type_registry().get_display_name(node.type)}").classes('text-lg font-bold')
            ui.label(node.label).classes('text-sm text-gray-500')
            for key, value in node.config.items():
                _config_field(ed, node.type, key, value, values)

            def apply():
                if ed.configure_node(node_id, values):
                    return
                dialog.close()
                refresh_chart_ui()

            with ui.row().classes('w-full justify-end'):
                ui.button('Cancel', on_click=dialog.close).props('flat')
                ui.button('Apply', on_click=apply).props('color=primary')
        dialog.open()

    # --- Edit handlers ---

    handlers = {}

    def bind_handlers():
        handlers.clear()
        handlers.update(setup_edit_handlers(
            current_editor(),
            refresh_chart_ui=refresh_chart_ui,
            open_config_dialog=open_config_dialog,
        ))

    def dispatch(name):
        return lambda e=None: handlers[name](e)

    def label_key(key: str):
        if current_editor().interaction.key_down(key):
            refresh_chart_ui()

    bind_handlers()
    ui.keyboard(on_key=dispatch('handle_keyboard'))

    # --- Flow switching ---

    def load_flow(flow_data):
        ed = current_editor()
        state['editor'] = FlowEditor.load(
            flow_data,
            settings=settings,
            saver=ed.saver,
            notifier=ed.notifier,
            buyers=ed.buyers,
            campaigns=ed.campaigns,
        )
        ed.close()
        bind_handlers()
        inputs = state['settings_inputs']
        inputs['name'].value = state['editor'].name
        inputs['description'].value = state['editor'].description
        campaign = state['editor'].campaign_id
        inputs['campaign'].value = str(campaign) if campaign is not None else 'none'
        refresh_chart_ui()

    # --- Layout ---

    with ui.row().classes('w-full h-screen no-wrap gap-0'):

        # 1. Palette
        with ui.column().classes('w-56 h-full p-3 gap-1 bg-gray-50 border-r overflow-y-auto'):
            ui.label('Node Palette').classes('text-sm font-bold')
            registry = get_node_type_registry()
            for node_type in registry.list_types():
                spec = registry.get_spec(node_type)

                def add(t=node_type):
                    current_editor().interaction.add_node_from_palette(t)
                    refresh_chart_ui()

                ui.button(f"{spec.icon} {spec.display_name}", on_click=add) \
                    .props('flat no-caps align=left').classes('w-full')

            ui.separator()
            ui.label('Templates').classes('text-sm font-bold')
            search = ui.input(placeholder='Search templates').props('dense clearable').classes('w-full')
            category = ui.select(
                {c['value']: c['label'] for c in library.categories()},
                value=ALL_CATEGORIES,
            ).props('dense').classes('w-full')
            template_list = ui.column().classes('w-full gap-1')

            def render_templates():
                template_list.clear()
                with template_list:
                    for template in library.list_templates(search.value or '', category.value):
                        def use(t=template):
                            load_flow(TemplateLibrary.to_flow_data(t))
                            ui.notify(f"Loaded template: {t['name']}", type='positive')

                        with ui.card().classes('w-full p-2 cursor-pointer').on('click', use):
                            ui.label(template['name']).classes('text-sm font-medium')
                            ui.label(f"{template['complexity']} | {template['category']}") \
                                .classes('text-xs text-gray-500')

            search.on_value_change(lambda e: render_templates())
            category.on_value_change(lambda e: render_templates())
            render_templates()

        # 2. Canvas
        with ui.column().classes('flex-grow h-full gap-0 relative'):
            with ui.row().classes('w-full items-center gap-2 p-2 border-b'):
                ui.button(icon='zoom_out', on_click=lambda: (current_editor().interaction.zoom_out(), refresh_chart_ui())) \
                    .props('flat dense').tooltip('Zoom out')
                zoom_label = ui.label('100%').classes('text-sm w-12 text-center')
                ui.button(icon='zoom_in', on_click=lambda: (current_editor().interaction.zoom_in(), refresh_chart_ui())) \
                    .props('flat dense').tooltip('Zoom in')
                ui.button(icon='center_focus_strong', on_click=lambda: (current_editor().interaction.reset_view(), refresh_chart_ui())) \
                    .props('flat dense').tooltip('Reset view')
                ui.label('Ctrl + wheel to zoom, drag the background to pan').classes('text-xs text-gray-400')

            state['chart'] = ui.echart(get_current_options())
            state['chart'].style(f'width: {CANVAS_WIDTH}px; height: {CANVAS_HEIGHT}px;')
            state['chart'].on('mousedown', dispatch('handle_mouse_down'), POINTER_EVENT_KEYS)
            state['chart'].on('mousemove', dispatch('handle_mouse_move'), ['offsetX', 'offsetY'])
            state['chart'].on('mouseup', dispatch('handle_mouse_up'), POINTER_EVENT_KEYS)
            state['chart'].on('mouseleave', dispatch('handle_mouse_leave'))
            state['chart'].on('click', dispatch('handle_click'), POINTER_EVENT_KEYS)
            state['chart'].on('dblclick', dispatch('handle_double_click'), POINTER_EVENT_KEYS)
            state['chart'].on('wheel', dispatch('handle_wheel'), POINTER_EVENT_KEYS)

            # Inline label editor
            label_card = ui.card().classes('absolute top-16 left-1/2 w-72 z-10 shadow-xl')
            with label_card:
                state['label_input'] = ui.input('Label').props('dense autofocus').classes('w-full')
                state['label_input'].on_value_change(lambda e: handlers['handle_label_input'](e.value))
                state['label_input'].on('blur', dispatch('handle_label_blur'))
                # ui.keyboard ignores keys typed into inputs
                state['label_input'].on('keydown.enter', lambda: label_key('Enter'))
                state['label_input'].on('keydown.esc', lambda: label_key('Escape'))
                ui.label('Enter to save, Escape to cancel').classes('text-xs text-gray-400')
            label_card.set_visibility(False)

        # 3. Flow settings
        with ui.column().classes('w-72 h-full p-3 gap-2 bg-gray-50 border-l'):
            ui.label('Flow Settings').classes('text-sm font-bold')
            inputs = state['settings_inputs']

            def set_name(e):
                current_editor().name = e.value or ''

            def set_description(e):
                current_editor().description = e.value or ''

            inputs['name'] = ui.input('Flow name', on_change=set_name).classes('w-full')
            inputs['description'] = ui.textarea('Description', on_change=set_description).classes('w-full')
            inputs['campaign'] = ui.select(
                dict(editor.campaign_options()),
                value='none',
                label='Campaign',
                on_change=lambda e: current_editor().set_campaign(e.value),
            ).classes('w-full')

            def do_save():
                document = current_editor().save()
                if document is not None:
                    ui.notify(f"Flow '{document['name']}' saved", type='positive')

            ui.button('Save Flow', icon='save', on_click=do_save).props('color=primary').classes('w-full')
            ui.button('New Flow', icon='add', on_click=lambda: load_flow(None)).props('flat').classes('w-full')

            ui.separator()
            ui.label('Double-click a node to configure it. Click the dot on its right '
                     'edge, then another node, to connect them.').classes('text-xs text-gray-400')

    refresh_chart_ui()


if __name__ in {"__main__", "__mp_main__"}:
    ui.run(
        title='Call Flow Editor',
        port=8081,
        reload=not getattr(sys, 'frozen', False),
    )
