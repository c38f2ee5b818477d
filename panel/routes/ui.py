"""
Web UI route handlers for the control panel.
"""
import logging
from html import escape

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from ..coordinator import RunCoordinator
from ..deps import get_coordinator

logger = logging.getLogger(__name__)
router = APIRouter(tags=["ui"])

INDEX_HTML = '''<!doctype html>
<html lang="en" class="h-full">
<head>
  <meta charset="utf-8"/>
  <meta name="viewport" content="width=device-width, initial-scale=1"/>
  <title>Marketplace Finder</title>
  <script src="https://unpkg.com/htmx.org@1.9.12"></script>
  <script src="https://cdn.tailwindcss.com"></script>
</head>
<body class="h-full bg-slate-50 text-slate-900">
<div class="max-w-7xl mx-auto px-4 py-6">
  <h1 class="text-2xl font-semibold mb-4">Marketplace Finder</h1>
  <form id="params" class="grid grid-cols-1 md:grid-cols-6 gap-3 mb-4" onsubmit="startScraper(); return false;">
    <input class="border rounded px-3 py-2 md:col-span-2" type="text" name="keywords" placeholder="Search keywords (e.g. riding mower)"/>
    <input class="border rounded px-3 py-2" type="text" name="location" placeholder="Zip / city / lat,lng" value="37138"/>
    <input class="border rounded px-3 py-2" type="number" name="radius" placeholder="Radius" value="50"/>
    <input class="border rounded px-3 py-2" type="number" name="limit" placeholder="Limit (1-100)" value="10"/>
    <input class="border rounded px-3 py-2" type="number" name="interval" placeholder="Re-run every N seconds" value="0"/>
    <input class="border rounded px-3 py-2" type="number" name="min_price" placeholder="Min price"/>
    <input class="border rounded px-3 py-2" type="number" name="max_price" placeholder="Max price"/>
    <input class="border rounded px-3 py-2 md:col-span-2" type="text" name="title_keywords" placeholder="Title keywords (comma separated)"/>
    <input class="border rounded px-3 py-2 md:col-span-2" type="text" name="description_keywords" placeholder="Description keywords (comma separated)"/>
    <div class="md:col-span-6 flex items-center gap-2">
      <label class="flex items-center gap-1 mr-2"><input type="checkbox" name="sold_history" checked/> Estimate resale prices</label>
      <button class="px-3 py-2 rounded bg-slate-800 text-white" type="submit">Start</button>
      <button class="px-3 py-2 rounded border" type="button" onclick="stopScraper()">Stop</button>
      <a class="px-3 py-2 rounded border" href="/api/csv" target="_blank">Export CSV</a>
      <button class="px-3 py-2 rounded border" type="button" onclick="loginFacebook()">Log in to Facebook</button>
      <span id="status" class="text-sm text-slate-500"></span>
    </div>
  </form>
  <div class="mb-4">
    <div class="w-full bg-slate-200 rounded h-2"><div id="bar" class="bg-emerald-600 h-2 rounded" style="width:0%"></div></div>
    <div id="stage" class="text-xs text-slate-500 mt-1">Ready to scrape</div>
  </div>
  <div id="table" hx-get="/ui/table" hx-trigger="load, refresh from:body"></div>
  <details class="mt-6 bg-white rounded-xl shadow border p-4">
    <summary class="font-medium cursor-pointer">Notifications</summary>
    <form id="notify" class="grid grid-cols-1 md:grid-cols-4 gap-3 mt-3" onsubmit="saveNotify(); return false;">
      <input class="border rounded px-3 py-2 md:col-span-2" type="text" name="webhook_url" placeholder="https://maker.ifttt.com/trigger/..."/>
      <input class="border rounded px-3 py-2" type="text" name="phone_number" placeholder="Phone number"/>
      <label class="flex items-center gap-1"><input type="checkbox" name="enabled"/> Enabled</label>
      <div class="md:col-span-4"><button class="px-3 py-2 rounded bg-slate-800 text-white" type="submit">Save</button>
      <span id="notify-status" class="text-sm text-slate-500 ml-2"></span></div>
    </form>
  </details>
</div>
<script>
function refreshTable() { htmx.trigger(document.body, 'refresh'); }

function startScraper() {
  const form = document.getElementById('params');
  const params = new URLSearchParams();
  for (const el of form.elements) {
    if (!el.name) continue;
    if (el.type === 'checkbox') { params.set(el.name, el.checked ? 'true' : 'false'); continue; }
    if (el.value.trim() !== '') params.set(el.name, el.value.trim());
  }
  fetch('/api/start?' + params.toString(), { method: 'POST' })
    .then(r => r.json())
    .then(data => { document.getElementById('status').textContent = data.message + (data.scheduled ? ' (scheduled)' : ''); })
    .catch(err => { document.getElementById('status').textContent = 'Error: ' + err.message; });
}

function stopScraper() {
  fetch('/api/stop', { method: 'POST' })
    .then(r => r.json())
    .then(data => { document.getElementById('status').textContent = data.message; refreshTable(); });
}

function loginFacebook() {
  fetch('/api/login', { method: 'POST' })
    .then(r => r.json())
    .then(data => { document.getElementById('status').textContent = data.message; });
}

function loadNotify() {
  fetch('/api/notify').then(r => r.json()).then(data => {
    const form = document.getElementById('notify');
    form.webhook_url.value = data.webhook_url || '';
    form.phone_number.value = data.phone_number || '';
    form.enabled.checked = !!data.enabled;
  });
}

function saveNotify() {
  const form = document.getElementById('notify');
  fetch('/api/notify', {
    method: 'POST',
    headers: { 'Content-Type': 'application/json' },
    body: JSON.stringify({
      webhook_url: form.webhook_url.value,
      phone_number: form.phone_number.value,
      enabled: form.enabled.checked
    })
  }).then(r => r.json()).then(data => {
    document.getElementById('notify-status').textContent = data.success ? 'Saved' : 'Error';
  });
}

const events = new EventSource('/api/progress');
events.onmessage = (e) => {
  const p = JSON.parse(e.data);
  document.getElementById('bar').style.width = p.progress + '%';
  document.getElementById('stage').textContent = p.message;
  if (p.stage === 'complete' || p.stage === 'error') refreshTable();
};

loadNotify();
</script>
</body></html>'''


@router.get('/', response_class=HTMLResponse)
async def index():
    """Control panel page."""
    return HTMLResponse(INDEX_HTML)


def _money(value) -> str:
    return f"${value:,.0f}" if value is not None else "-"


@router.get('/ui/table', response_class=HTMLResponse)
async def ui_table(coordinator: RunCoordinator = Depends(get_coordinator)):
    """Generate HTML table with the latest ranked deals."""
    try:
        last = coordinator.store.last_result

        html_parts = ['<div class="bg-white rounded-xl shadow border">']
        if last.error:
            html_parts.append(f'<div class="p-3 text-red-600">Last run failed: {escape(last.error)}</div>')

        html_parts.append('<table class="min-w-full divide-y divide-slate-200">')
        html_parts.append('<thead class="bg-slate-50"><tr>')
        headers = ["Title", "Price", "Model", "Sold avg", "Margin", "Profit range", "Link"]
        for header in headers:
            html_parts.append(f'<th class="px-3 py-2 text-left text-xs font-semibold">{header}</th>')
        html_parts.append('</tr></thead><tbody class="divide-y divide-slate-100">')

        for deal in last.deals:
            stats = deal.get("sold_stats") or {}
            margin = deal.get("margin_percent")
            margin_text = f"{margin:.1f}%" if margin is not None else "-"
            margin_class = "text-emerald-700" if margin and margin > 0 else "text-slate-500"
            link = escape(deal.get("link", ""), quote=True)

            html_parts.append('<tr>')
            html_parts.append(f'<td class="px-3 py-2"><div class="font-medium max-w-sm">{escape(deal.get("title", ""))}</div></td>')
            html_parts.append(f'<td class="px-3 py-2">{escape(deal.get("price_text", ""))}</td>')
            html_parts.append(f'<td class="px-3 py-2 text-xs">{escape(deal.get("model") or "")}</td>')
            sold = f'{_money(stats.get("average"))} ({stats.get("count", 0)})' if stats.get("count") else "-"
            html_parts.append(f'<td class="px-3 py-2">{sold}</td>')
            html_parts.append(f'<td class="px-3 py-2 {margin_class}">{margin_text}</td>')
            html_parts.append(f'<td class="px-3 py-2 text-xs">{escape(deal.get("profit_range", ""))}</td>')
            html_parts.append(f"<td class='px-3 py-2'><a class='text-blue-600 underline' href='{link}' target='_blank'>Open</a></td>")
            html_parts.append('</tr>')

        html_parts.append('</tbody></table>')
        html_parts.append('<div class="flex items-center justify-between p-3 text-sm text-slate-600">')
        html_parts.append(f'<div>Total: {len(last.deals)}</div>')
        html_parts.append(f'<div>Last run: {escape(last.ts or "never")}</div>')
        html_parts.append('</div></div>')

        return HTMLResponse(''.join(html_parts))

    except Exception as e:
        logger.error(f"Error generating UI table: {e}")
        return HTMLResponse('<div class="text-red-600">Error loading results</div>')
