import base64
import json
import logging
import os
from datetime import datetime
from functools import wraps

# Impor library Flask
from flask import (
    Flask,
    Response,
    flash,
    redirect,
    render_template_string,
    request,
    session,
    url_for,
)

from cadangan import (
    CadanganTidakValid,
    baca_cadangan,
    ekspor_cadangan,
    ekspor_warga_csv,
    nama_file_cadangan,
)
from data_rt import MODE_AWAL_BULAN, MODE_HARIAN, DataRT
from kalender import (
    NAMA_BULAN,
    NAMA_BULAN_PENDEK,
    geser_bulan,
    jumlah_hari,
    total_hari_bulan,
)
from kas import (
    arus_kas_bulan,
    filter_pengeluaran,
    filter_periode,
    ringkasan_kas,
    saldo_berjalan,
    tahun_tersedia,
)
from model import DAFTAR_ROLE, KELUAR, MASUK
from penyimpanan import buat_penyimpanan
from tunggakan import (
    matriks_pembayaran,
    periode_bulan,
    periode_tahun_berjalan,
    rekap_tunggakan,
    rekap_warga,
    sisa_tahun_berjalan,
    total_tunggakan,
    tunggakan_tahun_berjalan,
    urut_warga,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# --- KONFIGURASI ---
APP_DIR = os.path.dirname(os.path.abspath(__file__))
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_KEY = os.getenv("SUPABASE_KEY", "")

app = Flask(__name__)
app.secret_key = os.getenv("SECRET_KEY", "kunci-rahasia-jimpitan-rt")
app.config.update(
    SUPABASE_URL=SUPABASE_URL,
    SUPABASE_KEY=SUPABASE_KEY,
    DATA_DIR=os.getenv("DATA_DIR", os.path.join(APP_DIR, "data")),
)
# --- Akhir Konfigurasi ---


# --- Fungsi Format Rupiah ---
def format_rupiah(value):
    """Format angka menjadi string Rupiah 'Rp 1.000.000'."""
    try:
        return f"Rp {int(value):,}".replace(",", ".")
    except (ValueError, TypeError):
        return "Rp 0"


app.jinja_env.filters['rupiah'] = format_rupiah
app.jinja_env.globals['nama_bulan'] = NAMA_BULAN
app.jinja_env.globals['nama_bulan_pendek'] = NAMA_BULAN_PENDEK
# --- Akhir Fungsi Rupiah ---

# ---------------- Data Kategori ----------------
kategori_pengeluaran = {
    "Konsumsi": "Konsumsi",
    "Perbaikan": "Perbaikan Fasilitas",
    "Alat Tulis": "Alat Tulis & Kantor",
    "Sosial": "Santunan Sosial",
    "Lainnya": "Lain-lain",
}


# ---------------- Helper Functions ----------------
def ambil_data():
    """DataRT milik aplikasi; dimuat dari penyimpanan saat pertama dipakai."""
    data = app.extensions.get("data_rt")
    if data is None:
        data = DataRT.muat(buat_penyimpanan(app.config))
        app.extensions["data_rt"] = data
    return data


def baca_rupiah(teks):
    """'1.500.000' -> 1500000. String kosong -> None. Selain angka -> ValueError."""
    teks = (teks or "").replace("Rp", "").replace(".", "").replace(" ", "").strip()
    if not teks:
        return None
    return int(teks)


def render_halaman(konten, title, **context):
    full_html = HTML_LAYOUT.replace('{% block content %}{% endblock %}', konten)
    return render_template_string(full_html, title=title, data=ambil_data(), **context)
# --- Akhir Helper Functions ---


# ---------------- Decorator ----------------
def login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not session.get('logged_in'):
            session.clear()
            flash("Sesi tidak valid. Harap login ulang.", "danger")
            return redirect(url_for('login_page'))
        return f(*args, **kwargs)
    return decorated_function
# --- Akhir Decorator ---


# ---------------- KUMPULAN TEMPLATE HTML ----------------

HTML_LAYOUT = """
<!DOCTYPE html>
<html lang="id">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{{ title }} - {{ data.pengaturan.nama_instansi }}</title>
    <script src="https://cdn.tailwindcss.com"></script>
    <style>
        body { font-family: 'Inter', sans-serif; }
        @media print { nav, .no-print { display: none !important; } }
    </style>
</head>
<body class="bg-gray-100 min-h-screen">
    <nav class="bg-white shadow-md">
        <div class="max-w-7xl mx-auto px-4 sm:px-6 lg:px-8">
            <div class="flex justify-between h-16">
                <a href="{{ url_for('index_page') }}" class="flex items-center text-xl font-bold text-emerald-700">
                    {{ data.pengaturan.nama_instansi }}
                </a>
                <div class="flex items-center space-x-1">
                    {% if session.logged_in %}
                        <a href="{{ url_for('index_page') }}" class="px-3 py-2 rounded-md text-sm text-gray-700 hover:bg-gray-100">Dasbor</a>
                        <a href="{{ url_for('warga_page') }}" class="px-3 py-2 rounded-md text-sm text-gray-700 hover:bg-gray-100">Input Warga</a>
                        <a href="{{ url_for('iuran_page') }}" class="px-3 py-2 rounded-md text-sm text-gray-700 hover:bg-gray-100">Iuran</a>
                        <a href="{{ url_for('pengeluaran_page') }}" class="px-3 py-2 rounded-md text-sm text-gray-700 hover:bg-gray-100">Belanja</a>
                        <a href="{{ url_for('laporan_page') }}" class="px-3 py-2 rounded-md text-sm text-gray-700 hover:bg-gray-100">Laporan</a>
                        <a href="{{ url_for('backup_page') }}" class="px-3 py-2 rounded-md text-sm text-gray-700 hover:bg-gray-100">Backup</a>
                        <a href="{{ url_for('master_data_page') }}" class="px-3 py-2 rounded-md text-sm text-gray-700 hover:bg-gray-100">Master Data</a>
                        <a href="{{ url_for('pengaturan_page') }}" class="px-3 py-2 rounded-md text-sm text-gray-700 hover:bg-gray-100">Pengaturan</a>
                        <span class="text-gray-700 ml-4 text-sm">Halo, <b>{{ session.username }}</b></span>
                        <a href="{{ url_for('logout_page') }}" class="ml-2 px-3 py-2 rounded-md text-sm font-medium text-red-600 bg-red-100 hover:bg-red-200">Logout</a>
                    {% else %}
                        <a href="{{ url_for('login_page') }}" class="px-3 py-2 rounded-md text-sm font-medium text-emerald-700 bg-emerald-100">Login</a>
                    {% endif %}
                </div>
            </div>
        </div>
    </nav>

    <main>
        <div class="max-w-7xl mx-auto py-6 sm:px-6 lg:px-8">
            {% if session.logged_in and data.galat_sinkron %}
              <div class="no-print bg-amber-50 border border-amber-300 text-amber-800 px-4 py-3 rounded-md mb-4 flex justify-between items-center">
                <div>
                  <p class="text-xs font-bold uppercase">Offline / Local Mode</p>
                  <p class="text-sm">{{ data.galat_sinkron }}</p>
                </div>
                <a href="{{ url_for('tutup_notifikasi') }}" class="text-sm font-medium hover:underline">Tutup</a>
              </div>
            {% endif %}

            {% with messages = get_flashed_messages(with_categories=true) %}
              {% if messages %}
                {% for category, message in messages %}
                  <div class="{% if category == 'success' %}bg-green-100 border-green-400 text-green-700{% else %}bg-red-100 border-red-400 text-red-700{% endif %} border px-4 py-3 rounded-md mb-4" role="alert">
                    {{ message }}
                  </div>
                {% endfor %}
              {% endif %}
            {% endwith %}

            {% block content %}{% endblock %}
        </div>
    </main>

    <script>
        function formatRupiah(element) {
            let value = element.value.replace(/[^\\d]/g, '');
            element.value = value.replace(/\\B(?=(\\d{3})+(?!\\d))/g, '.');
        }
    </script>
</body>
</html>
"""

HTML_LOGIN = """
<div class="flex items-center justify-center py-12 px-4">
    <div class="max-w-md w-full space-y-8 bg-white p-10 rounded-xl shadow-lg">
        <h2 class="text-center text-3xl font-extrabold text-gray-900">Masuk Sistem</h2>
        <form class="space-y-4" action="{{ url_for('login_page') }}" method="POST">
            <input name="user_id" type="text" required placeholder="Masukkan ID Pengurus"
                   class="block w-full px-3 py-2 border border-gray-300 rounded-md sm:text-sm">
            <input name="password" type="password" required placeholder="Masukkan Kata Sandi"
                   class="block w-full px-3 py-2 border border-gray-300 rounded-md sm:text-sm">
            <button type="submit" class="w-full py-2 px-4 rounded-md text-sm font-medium text-white bg-emerald-600 hover:bg-emerald-700">
                Masuk
            </button>
        </form>
        <p class="text-center text-xs text-gray-400">Lupa akses? Hubungi Admin Lingkungan</p>
    </div>
</div>
"""

HTML_DASHBOARD = """
<div class="space-y-6">
    <div class="bg-white p-6 rounded-xl shadow-lg flex items-center gap-4">
        {% if data.pengaturan.logo_instansi %}
        <img src="{{ data.pengaturan.logo_instansi }}" class="h-14 w-14 rounded-lg object-cover" alt="logo">
        {% endif %}
        <div>
            <h1 class="text-2xl font-bold text-gray-900">{{ data.pengaturan.nama_instansi }}</h1>
            <p class="text-gray-500 text-sm">{{ data.pengaturan.alamat_instansi }}</p>
        </div>
    </div>

    <div class="grid grid-cols-1 md:grid-cols-4 gap-4">
        <div class="bg-white p-5 rounded-xl shadow">
            <p class="text-xs uppercase text-gray-500">Saldo Kas</p>
            <p class="text-2xl font-bold text-emerald-700">{{ ringkasan.saldo | rupiah }}</p>
        </div>
        <div class="bg-white p-5 rounded-xl shadow">
            <p class="text-xs uppercase text-gray-500">Pemasukan Bulan Ini</p>
            <p class="text-2xl font-bold text-gray-900">{{ arus.masuk | rupiah }}</p>
        </div>
        <div class="bg-white p-5 rounded-xl shadow">
            <p class="text-xs uppercase text-gray-500">Pengeluaran Bulan Ini</p>
            <p class="text-2xl font-bold text-red-600">{{ arus.keluar | rupiah }}</p>
        </div>
        <div class="bg-white p-5 rounded-xl shadow">
            <p class="text-xs uppercase text-gray-500">Total Tunggakan {{ tahun_sekarang }}</p>
            <p class="text-2xl font-bold text-amber-600">{{ total_tunggakan | rupiah }}</p>
            <p class="text-xs text-gray-500">{{ tunggakan | length }} warga</p>
        </div>
    </div>

    <div class="bg-white p-6 rounded-xl shadow-lg">
        <h2 class="text-lg font-bold text-gray-800 mb-3">Cek Iuran Warga</h2>
        <form method="GET" action="{{ url_for('index_page') }}" class="flex gap-2 mb-4">
            <input type="hidden" name="tahun" value="{{ tahun_matriks }}">
            <select name="cek" class="flex-1 px-3 py-2 border border-gray-300 rounded-md text-sm">
                <option value="">Pilih Warga...</option>
                {% for w in warga_urut %}
                <option value="{{ w.id }}" {% if cek and cek.id == w.id %}selected{% endif %}>{{ w.nama }} ({{ w.blok }})</option>
                {% endfor %}
            </select>
            <button class="px-4 py-2 bg-gray-700 text-white rounded-md text-sm">Cek</button>
        </form>
        {% if cek %}
        <div class="grid grid-cols-3 gap-4 text-sm">
            <div><p class="text-gray-500">Kewajiban</p><p class="font-bold">{{ cek.kewajiban | rupiah }}</p></div>
            <div><p class="text-gray-500">Terbayar</p><p class="font-bold text-emerald-700">{{ cek.terbayar | rupiah }}</p></div>
            <div><p class="text-gray-500">Sisa</p><p class="font-bold text-red-600">{{ cek.sisa | rupiah }}</p></div>
        </div>
        <div class="mt-3 w-full bg-gray-200 rounded-full h-3">
            <div class="bg-emerald-600 h-3 rounded-full" style="width: {{ cek.persen }}%"></div>
        </div>
        <p class="text-xs text-gray-500 mt-1">{{ cek.persen }}% terbayar</p>
        {% endif %}
    </div>

    <div class="bg-white p-6 rounded-xl shadow-lg">
        <h2 class="text-lg font-bold text-gray-800 mb-3">Tunggakan Sejak Awal Tahun</h2>
        {% if tunggakan %}
        <table class="min-w-full divide-y divide-gray-200 text-sm">
            <thead class="bg-gray-50"><tr>
                <th class="px-4 py-2 text-left">Nama</th><th class="px-4 py-2 text-left">Blok</th>
                <th class="px-4 py-2 text-right">Terbayar</th><th class="px-4 py-2 text-right">Sisa</th>
            </tr></thead>
            <tbody class="divide-y divide-gray-100">
            {% for row in tunggakan %}
                <tr>
                    <td class="px-4 py-2">{{ row.nama }}</td><td class="px-4 py-2">{{ row.blok }}</td>
                    <td class="px-4 py-2 text-right">{{ row.terbayar | rupiah }}</td>
                    <td class="px-4 py-2 text-right text-red-600 font-medium">{{ row.sisa | rupiah }}</td>
                </tr>
            {% endfor %}
            </tbody>
        </table>
        {% else %}
        <p class="text-gray-500 text-sm">Tidak ada tunggakan.</p>
        {% endif %}
    </div>

    <div class="bg-white p-6 rounded-xl shadow-lg overflow-x-auto">
        <div class="flex items-center justify-between mb-3">
            <h2 class="text-lg font-bold text-gray-800">Matriks Setoran {{ tahun_matriks }}</h2>
            <div class="flex gap-2 text-sm">
                <a href="{{ url_for('index_page', tahun=tahun_matriks - 1) }}" class="px-3 py-1 bg-gray-100 rounded">&laquo;</a>
                <a href="{{ url_for('index_page', tahun=tahun_matriks + 1) }}" class="px-3 py-1 bg-gray-100 rounded">&raquo;</a>
                {% if tahun_matriks != tahun_sekarang %}
                <a href="{{ url_for('index_page') }}" class="px-3 py-1 bg-emerald-100 text-emerald-700 rounded">Sekarang</a>
                {% endif %}
            </div>
        </div>
        <table class="min-w-full text-sm">
            <thead><tr>
                <th class="px-2 py-2 text-left">Warga</th>
                {% for b in nama_bulan_pendek %}<th class="px-2 py-2">{{ b }}</th>{% endfor %}
            </tr></thead>
            <tbody class="divide-y divide-gray-100">
            {% for row in matriks %}
                <tr>
                    <td class="px-2 py-1">{{ row.nama }}</td>
                    {% for lunas in row.status %}
                    <td class="px-2 py-1 text-center">{% if lunas %}<span class="text-emerald-600">&#10003;</span>{% else %}<span class="text-gray-300">&ndash;</span>{% endif %}</td>
                    {% endfor %}
                </tr>
            {% endfor %}
            </tbody>
        </table>
    </div>
</div>
"""

HTML_WARGA = """
<div class="grid grid-cols-1 lg:grid-cols-3 gap-6">
    <div class="bg-white p-6 rounded-xl shadow-lg">
        <h2 class="text-xl font-bold text-gray-900 mb-4">Pendaftaran Baru</h2>
        <form action="{{ url_for('warga_page') }}" method="POST" class="space-y-3">
            <input name="nama" required placeholder="Budi Santoso" class="block w-full px-3 py-2 border border-gray-300 rounded-md text-sm">
            <input name="no_kk" required placeholder="16 Digit KK" class="block w-full px-3 py-2 border border-gray-300 rounded-md text-sm">
            <input name="whatsapp" placeholder="0812..." class="block w-full px-3 py-2 border border-gray-300 rounded-md text-sm">
            <input name="blok" placeholder="A-12" class="block w-full px-3 py-2 border border-gray-300 rounded-md text-sm">
            <button type="submit" class="w-full py-2 rounded-md text-sm font-medium text-white bg-emerald-600 hover:bg-emerald-700">Simpan Data</button>
        </form>
    </div>
    <div class="bg-white p-6 rounded-xl shadow-lg lg:col-span-2">
        <h2 class="text-xl font-bold text-gray-900 mb-4">Daftar Warga <span class="text-sm text-gray-500">{{ warga_urut | length }} Jiwa</span></h2>
        {% if warga_urut %}
        <ul class="divide-y divide-gray-100">
            {% for w in warga_urut %}
            <li class="py-2 flex justify-between items-center">
                <div><p class="font-medium">{{ w.nama }}</p><p class="text-xs text-gray-500">{{ w.blok }} &middot; {{ w.whatsapp }}</p></div>
                <form action="{{ url_for('hapus_warga_page', warga_id=w.id) }}" method="POST" onsubmit="return confirm('Hapus data warga ini?')">
                    <button class="text-red-600 text-sm hover:underline">Hapus</button>
                </form>
            </li>
            {% endfor %}
        </ul>
        {% else %}
        <p class="text-gray-500 text-sm">Belum ada warga terdaftar.</p>
        {% endif %}
    </div>
</div>
"""

HTML_MASTER_DATA = """
<div class="bg-white p-6 rounded-xl shadow-lg space-y-4">
    <div class="flex justify-between items-center">
        <h2 class="text-2xl font-bold text-gray-900">Master Data Warga</h2>
        <a href="{{ url_for('ekspor_warga_page') }}" class="px-4 py-2 bg-gray-700 text-white rounded-md text-sm">Ekspor CSV</a>
    </div>
    <form method="GET" action="{{ url_for('master_data_page') }}" class="flex gap-2">
        <input name="cari" value="{{ cari }}" placeholder="Cari nama, KK, atau WhatsApp" class="flex-1 px-3 py-2 border border-gray-300 rounded-md text-sm">
        <select name="blok" class="px-3 py-2 border border-gray-300 rounded-md text-sm">
            {% for b in daftar_blok %}<option value="{{ b }}" {% if b == blok %}selected{% endif %}>{{ b }}</option>{% endfor %}
        </select>
        <button class="px-4 py-2 bg-emerald-600 text-white rounded-md text-sm">Filter</button>
    </form>

    {% if edit %}
    <form action="{{ url_for('ubah_warga_page', warga_id=edit.id) }}" method="POST" class="grid grid-cols-1 md:grid-cols-5 gap-2 bg-emerald-50 p-4 rounded-md">
        <input name="nama" value="{{ edit.nama }}" required class="px-3 py-2 border border-gray-300 rounded-md text-sm">
        <input name="no_kk" value="{{ edit.no_kk }}" required class="px-3 py-2 border border-gray-300 rounded-md text-sm">
        <input name="whatsapp" value="{{ edit.whatsapp }}" class="px-3 py-2 border border-gray-300 rounded-md text-sm">
        <input name="blok" value="{{ edit.blok }}" class="px-3 py-2 border border-gray-300 rounded-md text-sm">
        <button class="px-4 py-2 bg-emerald-600 text-white rounded-md text-sm">Simpan Perubahan</button>
    </form>
    {% endif %}

    <div class="overflow-x-auto rounded-lg border border-gray-200">
        <table class="min-w-full divide-y divide-gray-200 text-sm">
            <thead class="bg-gray-50"><tr>
                <th class="px-4 py-2 text-left">Nama</th><th class="px-4 py-2 text-left">No KK</th>
                <th class="px-4 py-2 text-left">WhatsApp</th><th class="px-4 py-2 text-left">Blok</th>
                <th class="px-4 py-2 text-left">Terdaftar</th><th class="px-4 py-2 text-left">Aksi</th>
            </tr></thead>
            <tbody class="divide-y divide-gray-100">
            {% for w in daftar_warga %}
                <tr>
                    <td class="px-4 py-2">{{ w.nama }}</td><td class="px-4 py-2">{{ w.no_kk }}</td>
                    <td class="px-4 py-2">{{ w.whatsapp }}</td><td class="px-4 py-2">{{ w.blok or 'Tanpa Blok' }}</td>
                    <td class="px-4 py-2">{{ w.terdaftar_at }}</td>
                    <td class="px-4 py-2 flex gap-3">
                        <a href="{{ url_for('master_data_page', edit=w.id, cari=cari, blok=blok) }}" class="text-emerald-700 hover:underline">Ubah</a>
                        <form action="{{ url_for('hapus_warga_page', warga_id=w.id) }}" method="POST" onsubmit="return confirm('Hapus data warga ini?')">
                            <input type="hidden" name="kembali" value="master">
                            <button class="text-red-600 hover:underline">Hapus</button>
                        </form>
                    </td>
                </tr>
            {% else %}
                <tr><td colspan="6" class="px-4 py-4 text-center text-gray-500">Tidak ada data.</td></tr>
            {% endfor %}
            </tbody>
        </table>
    </div>
</div>
"""

HTML_IURAN = """
<div class="space-y-6">
    <div class="bg-white p-6 rounded-xl shadow-lg flex flex-wrap justify-between items-center gap-4">
        <div>
            <h1 class="text-2xl font-bold text-gray-900">Iuran Harian</h1>
            <p class="text-sm text-gray-500">Nominal wajib: <b>{{ data.nominal_wajib | rupiah }}</b> / hari</p>
        </div>
        <form action="{{ url_for('nominal_wajib_page') }}" method="POST" class="flex gap-2">
            <input name="nominal_wajib" value="{{ data.nominal_wajib }}" inputmode="numeric" class="w-32 px-3 py-2 border border-gray-300 rounded-md text-sm">
            <button class="px-4 py-2 bg-gray-700 text-white rounded-md text-sm">Ubah Nominal</button>
        </form>
    </div>

    <div class="bg-white p-6 rounded-xl shadow-lg">
        <h2 class="text-xl font-bold text-gray-900 mb-4">Catat Setoran</h2>
        <div class="flex gap-2 mb-4 text-sm">
            {% for kode, label in [('hari', 'Per Hari'), ('bulan', 'Paket Bulanan'), ('bebas', 'Nominal Bebas')] %}
            <a href="{{ url_for('iuran_page', mode=kode, warga=warga_terpilih) }}"
               class="px-3 py-2 rounded-md {% if mode == kode %}bg-emerald-600 text-white{% else %}bg-gray-100 text-gray-700{% endif %}">{{ label }}</a>
            {% endfor %}
        </div>

        {% if mode == 'hari' %}
        <form method="GET" action="{{ url_for('iuran_page') }}" class="flex gap-2 mb-4 text-sm">
            <input type="hidden" name="mode" value="hari">
            <input type="hidden" name="warga" value="{{ warga_terpilih }}">
            <select name="input_bulan" class="px-3 py-2 border border-gray-300 rounded-md">
                {% for nama in nama_bulan %}<option value="{{ loop.index }}" {% if loop.index == input_bulan %}selected{% endif %}>{{ nama }}</option>{% endfor %}
            </select>
            <input name="input_tahun" value="{{ input_tahun }}" class="w-24 px-3 py-2 border border-gray-300 rounded-md">
            <button class="px-3 py-2 bg-gray-100 rounded-md">Tampilkan Tanggal</button>
        </form>
        {% endif %}

        <form action="{{ url_for('iuran_page') }}" method="POST" class="space-y-4">
            <input type="hidden" name="mode" value="{{ mode }}">
            <div>
                <label class="block text-sm font-medium text-gray-700">Warga</label>
                <select name="warga_id" required class="mt-1 block w-full px-3 py-2 border border-gray-300 rounded-md text-sm">
                    <option value="">Pilih Warga...</option>
                    {% for w in warga_urut %}
                    <option value="{{ w.id }}" {% if w.id == warga_terpilih %}selected{% endif %}>{{ w.nama }} ({{ w.blok }})</option>
                    {% endfor %}
                </select>
                {% if warga_terpilih and sisa_terpilih > 0 %}
                <p class="text-xs text-red-600 mt-1">Tunggakan sejak awal tahun: {{ sisa_terpilih | rupiah }}</p>
                {% endif %}
            </div>

            {% if mode == 'hari' %}
            <input type="hidden" name="bulan" value="{{ input_bulan }}">
            <input type="hidden" name="tahun" value="{{ input_tahun }}">
            <div>
                <p class="text-sm font-medium text-gray-700 mb-2">Tanggal ({{ nama_bulan[input_bulan - 1] }} {{ input_tahun }})</p>
                <div class="grid grid-cols-7 gap-1">
                    {% for h in daftar_hari %}
                    <label class="flex items-center justify-center gap-1 border rounded p-1 text-xs">
                        <input type="checkbox" name="hari" value="{{ h }}"> {{ h }}
                    </label>
                    {% endfor %}
                </div>
            </div>
            {% elif mode == 'bulan' %}
            <div class="grid grid-cols-2 md:grid-cols-4 gap-2">
                <select name="bulan" class="px-3 py-2 border border-gray-300 rounded-md text-sm">
                    {% for nama in nama_bulan %}<option value="{{ loop.index }}" {% if loop.index == input_bulan %}selected{% endif %}>{{ nama }}</option>{% endfor %}
                </select>
                <input name="tahun" value="{{ input_tahun }}" class="px-3 py-2 border border-gray-300 rounded-md text-sm">
                <input name="jumlah_bulan" value="1" inputmode="numeric" placeholder="Jumlah bulan" class="px-3 py-2 border border-gray-300 rounded-md text-sm">
                <select name="mode_paket" class="px-3 py-2 border border-gray-300 rounded-md text-sm">
                    <option value="{{ mode_harian }}">Sebar per hari</option>
                    <option value="{{ mode_awal_bulan }}">Catat di tanggal 01</option>
                </select>
            </div>
            {% else %}
            <div>
                <label class="block text-sm font-medium text-gray-700">Catatan</label>
                <input name="catatan" value="{{ catatan_awal }}" placeholder="Keterangan pembayaran" class="mt-1 block w-full px-3 py-2 border border-gray-300 rounded-md text-sm">
            </div>
            {% endif %}

            <div>
                <label class="block text-sm font-medium text-gray-700">Jumlah (Rp)</label>
                <input name="jumlah" value="{{ jumlah_awal }}" inputmode="numeric" onkeyup="formatRupiah(this)"
                       {% if mode == 'bebas' %}required{% endif %}
                       placeholder="{% if mode == 'bebas' %}Contoh: 50.000{% else %}Kosongkan untuk hitung otomatis{% endif %}"
                       class="mt-1 block w-full px-3 py-2 border border-gray-300 rounded-md text-sm">
            </div>
            <button type="submit" class="w-full py-2 rounded-md text-sm font-medium text-white bg-emerald-600 hover:bg-emerald-700">Simpan Setoran</button>
        </form>
    </div>

    <div class="bg-white p-6 rounded-xl shadow-lg">
        <div class="flex flex-wrap justify-between items-center gap-2 mb-4">
            <h2 class="text-xl font-bold text-gray-900">
                Rekap {% if rekap == 'bulan' %}{{ nama_bulan[lihat_bulan - 1] }} {{ lihat_tahun }}{% else %}Tahun {{ tahun_sekarang }}{% endif %}
            </h2>
            <div class="flex gap-2 text-sm">
                <a href="{{ url_for('iuran_page', rekap='tahun', tab=tab) }}" class="px-3 py-1 rounded {% if rekap == 'tahun' %}bg-emerald-600 text-white{% else %}bg-gray-100{% endif %}">Tahunan</a>
                <a href="{{ url_for('iuran_page', rekap='bulan', tab=tab) }}" class="px-3 py-1 rounded {% if rekap == 'bulan' %}bg-emerald-600 text-white{% else %}bg-gray-100{% endif %}">Bulanan</a>
                {% if rekap == 'bulan' %}
                <a href="{{ url_for('iuran_page', rekap='bulan', tab=tab, lihat_bulan=bulan_sebelum[0], lihat_tahun=bulan_sebelum[1]) }}" class="px-3 py-1 bg-gray-100 rounded">&laquo;</a>
                <a href="{{ url_for('iuran_page', rekap='bulan', tab=tab, lihat_bulan=bulan_sesudah[0], lihat_tahun=bulan_sesudah[1]) }}" class="px-3 py-1 bg-gray-100 rounded">&raquo;</a>
                {% endif %}
            </div>
        </div>
        <form method="GET" action="{{ url_for('iuran_page') }}" class="flex gap-2 mb-4">
            <input type="hidden" name="rekap" value="{{ rekap }}">
            <input type="hidden" name="tab" value="{{ tab }}">
            <input type="hidden" name="lihat_bulan" value="{{ lihat_bulan }}">
            <input type="hidden" name="lihat_tahun" value="{{ lihat_tahun }}">
            <input name="cari" value="{{ cari }}" placeholder="Cari nama atau blok" class="flex-1 px-3 py-2 border border-gray-300 rounded-md text-sm">
            <button class="px-4 py-2 bg-gray-700 text-white rounded-md text-sm">Cari</button>
        </form>
        <div class="flex gap-2 mb-3 text-sm">
            <a href="{{ url_for('iuran_page', rekap=rekap, tab='tunggakan', cari=cari, lihat_bulan=lihat_bulan, lihat_tahun=lihat_tahun) }}" class="px-3 py-1 rounded {% if tab == 'tunggakan' %}bg-red-100 text-red-700{% else %}bg-gray-100{% endif %}">Tunggakan ({{ daftar_tunggakan | length }})</a>
            <a href="{{ url_for('iuran_page', rekap=rekap, tab='lunas', cari=cari, lihat_bulan=lihat_bulan, lihat_tahun=lihat_tahun) }}" class="px-3 py-1 rounded {% if tab == 'lunas' %}bg-emerald-100 text-emerald-700{% else %}bg-gray-100{% endif %}">Lunas ({{ daftar_lunas | length }})</a>
        </div>
        <table class="min-w-full divide-y divide-gray-200 text-sm">
            <thead class="bg-gray-50"><tr>
                <th class="px-4 py-2 text-left">Nama</th><th class="px-4 py-2 text-left">Blok</th>
                <th class="px-4 py-2 text-right">Kewajiban</th><th class="px-4 py-2 text-right">Terbayar</th>
                <th class="px-4 py-2 text-right">Sisa</th><th class="px-4 py-2"></th>
            </tr></thead>
            <tbody class="divide-y divide-gray-100">
            {% for row in (daftar_tunggakan if tab == 'tunggakan' else daftar_lunas) %}
                <tr>
                    <td class="px-4 py-2">{{ row.nama }}</td><td class="px-4 py-2">{{ row.blok }}</td>
                    <td class="px-4 py-2 text-right">{{ row.kewajiban | rupiah }}</td>
                    <td class="px-4 py-2 text-right">{{ row.terbayar | rupiah }}</td>
                    <td class="px-4 py-2 text-right {% if row.sisa %}text-red-600{% endif %}">{{ row.sisa | rupiah }}</td>
                    <td class="px-4 py-2 text-right">
                        {% if row.sisa %}
                        <a href="{{ url_for('iuran_page', mode='bebas', warga=row.id, jumlah=row.sisa, catatan='Pelunasan Tunggakan YTD') }}" class="text-emerald-700 hover:underline">Lunasi</a>
                        {% endif %}
                    </td>
                </tr>
            {% else %}
                <tr><td colspan="6" class="px-4 py-4 text-center text-gray-500">Tidak ada data.</td></tr>
            {% endfor %}
            </tbody>
        </table>
    </div>
</div>
"""

HTML_PENGELUARAN = """
<div class="grid grid-cols-1 lg:grid-cols-3 gap-6">
    <div class="bg-white p-6 rounded-xl shadow-lg">
        <h2 class="text-xl font-bold text-gray-900 mb-4">Catat Belanja</h2>
        <form action="{{ url_for('pengeluaran_page') }}" method="POST" class="space-y-3">
            <input name="keterangan" required placeholder="Mis: Konsumsi Rapat" class="block w-full px-3 py-2 border border-gray-300 rounded-md text-sm">
            <select name="kategori" class="block w-full px-3 py-2 border border-gray-300 rounded-md text-sm">
                {% for kode, label in kategori_pengeluaran.items() %}<option value="{{ kode }}">{{ label }}</option>{% endfor %}
            </select>
            <input name="jumlah" required inputmode="numeric" onkeyup="formatRupiah(this)" placeholder="Contoh: 150.000" class="block w-full px-3 py-2 border border-gray-300 rounded-md text-sm">
            <input type="date" name="tanggal" value="{{ today }}" required class="block w-full px-3 py-2 border border-gray-300 rounded-md text-sm">
            <button type="submit" class="w-full py-2 rounded-md text-sm font-medium text-white bg-red-600 hover:bg-red-700">Simpan Pengeluaran</button>
        </form>
    </div>
    <div class="bg-white p-6 rounded-xl shadow-lg lg:col-span-2">
        <form method="GET" action="{{ url_for('pengeluaran_page') }}" class="flex gap-2 mb-4 text-sm">
            <select name="bulan" class="px-3 py-2 border border-gray-300 rounded-md">
                <option value="Semua">Semua Bulan</option>
                {% for nama in nama_bulan %}<option value="{{ loop.index }}" {% if filter_bulan == loop.index|string %}selected{% endif %}>{{ nama }}</option>{% endfor %}
            </select>
            <select name="tahun" class="px-3 py-2 border border-gray-300 rounded-md">
                <option value="Semua">Semua Tahun</option>
                {% for t in daftar_tahun %}<option value="{{ t }}" {% if filter_tahun == t|string %}selected{% endif %}>{{ t }}</option>{% endfor %}
            </select>
            <button class="px-4 py-2 bg-gray-700 text-white rounded-md">Filter</button>
        </form>
        <p class="text-sm text-gray-600 mb-2">Total: <b class="text-red-600">{{ total | rupiah }}</b></p>
        <table class="min-w-full divide-y divide-gray-200 text-sm">
            <thead class="bg-gray-50"><tr>
                <th class="px-4 py-2 text-left">Tanggal</th><th class="px-4 py-2 text-left">Keterangan</th>
                <th class="px-4 py-2 text-left">Kategori</th><th class="px-4 py-2 text-right">Jumlah</th>
            </tr></thead>
            <tbody class="divide-y divide-gray-100">
            {% for t in daftar_pengeluaran %}
                <tr>
                    <td class="px-4 py-2">{{ t.tanggal }}</td><td class="px-4 py-2">{{ t.keterangan }}</td>
                    <td class="px-4 py-2">{{ t.sub_keterangan }}</td>
                    <td class="px-4 py-2 text-right text-red-600">{{ t.jumlah | rupiah }}</td>
                </tr>
            {% else %}
                <tr><td colspan="4" class="px-4 py-4 text-center text-gray-500">Belum ada pengeluaran.</td></tr>
            {% endfor %}
            </tbody>
        </table>
    </div>
</div>
"""

HTML_LAPORAN = """
<div class="space-y-6">
    <div class="bg-white p-6 rounded-xl shadow-lg">
        <div class="flex flex-wrap justify-between items-center gap-2">
            <div>
                <h1 class="text-2xl font-bold text-gray-900">Laporan Keuangan</h1>
                <p class="text-sm text-gray-500">{{ data.pengaturan.nama_instansi }} &middot; {{ data.pengaturan.alamat_instansi }}</p>
            </div>
            <button onclick="window.print()" class="no-print px-4 py-2 bg-gray-700 text-white rounded-md text-sm">Cetak PDF</button>
        </div>
        <form method="POST" action="{{ url_for('laporan_page') }}" class="no-print flex flex-wrap gap-2 mt-4 text-sm">
            <input type="date" name="mulai" value="{{ filter_tanggal.mulai }}" class="px-3 py-2 border border-gray-300 rounded-md">
            <input type="date" name="akhir" value="{{ filter_tanggal.akhir }}" class="px-3 py-2 border border-gray-300 rounded-md">
            <button class="px-4 py-2 bg-emerald-600 text-white rounded-md">Terapkan</button>
            <a href="{{ url_for('laporan_page') }}" class="px-4 py-2 bg-gray-100 rounded-md">Semua</a>
        </form>
    </div>

    <div class="grid grid-cols-1 md:grid-cols-3 gap-4">
        <div class="bg-white p-5 rounded-xl shadow"><p class="text-xs uppercase text-gray-500">Total Masuk</p><p class="text-2xl font-bold text-emerald-700">{{ ringkasan.total_masuk | rupiah }}</p></div>
        <div class="bg-white p-5 rounded-xl shadow"><p class="text-xs uppercase text-gray-500">Total Keluar</p><p class="text-2xl font-bold text-red-600">{{ ringkasan.total_keluar | rupiah }}</p></div>
        <div class="bg-white p-5 rounded-xl shadow"><p class="text-xs uppercase text-gray-500">Saldo Akhir</p><p class="text-2xl font-bold text-gray-900">{{ ringkasan.saldo | rupiah }}</p></div>
    </div>

    <div class="bg-white p-6 rounded-xl shadow-lg no-print">
        <h2 class="text-lg font-bold text-gray-800 mb-3">Transaksi Baru</h2>
        <form action="{{ url_for('tambah_transaksi_page') }}" method="POST" class="grid grid-cols-1 md:grid-cols-5 gap-2 text-sm">
            <select name="kategori" class="px-3 py-2 border border-gray-300 rounded-md">
                <option value="{{ masuk }}">Setoran</option>
                <option value="{{ keluar }}">Belanja</option>
            </select>
            <input name="keterangan" required placeholder="Mis: Konsumsi Rapat" class="px-3 py-2 border border-gray-300 rounded-md">
            <input name="sub_keterangan" placeholder="Sub keterangan" class="px-3 py-2 border border-gray-300 rounded-md">
            <input name="jumlah" required inputmode="numeric" onkeyup="formatRupiah(this)" placeholder="0" class="px-3 py-2 border border-gray-300 rounded-md">
            <button class="px-4 py-2 bg-emerald-600 text-white rounded-md">Simpan</button>
        </form>
    </div>

    <div class="bg-white p-6 rounded-xl shadow-lg">
        <h2 class="text-lg font-bold text-gray-800 mb-3">Riwayat Arus Kas <span class="text-sm text-gray-500">{{ baris | length }} Transaksi</span></h2>
        <table class="min-w-full divide-y divide-gray-200 text-sm">
            <thead class="bg-gray-50"><tr>
                <th class="px-4 py-2 text-left">Tanggal</th><th class="px-4 py-2 text-left">Keterangan</th>
                <th class="px-4 py-2 text-right">Masuk</th><th class="px-4 py-2 text-right">Keluar</th>
                <th class="px-4 py-2 text-right">Saldo</th>
            </tr></thead>
            <tbody class="divide-y divide-gray-100">
            {% for row in baris %}
                <tr>
                    <td class="px-4 py-2">{{ row.tanggal }}</td>
                    <td class="px-4 py-2">{{ row.keterangan }}<p class="text-xs text-gray-400">{{ row.sub_keterangan }}</p></td>
                    <td class="px-4 py-2 text-right text-emerald-700">{% if row.kategori == masuk %}{{ row.jumlah | rupiah }}{% else %}-{% endif %}</td>
                    <td class="px-4 py-2 text-right text-red-600">{% if row.kategori == keluar %}{{ row.jumlah | rupiah }}{% else %}-{% endif %}</td>
                    <td class="px-4 py-2 text-right font-medium">{{ row.saldo | rupiah }}</td>
                </tr>
            {% else %}
                <tr><td colspan="5" class="px-4 py-4 text-center text-gray-500">Belum ada transaksi.</td></tr>
            {% endfor %}
            </tbody>
        </table>
    </div>
</div>
"""

HTML_BACKUP = """
<div class="grid grid-cols-1 md:grid-cols-2 gap-6">
    <div class="bg-white p-6 rounded-xl shadow-lg space-y-3">
        <h2 class="text-xl font-bold text-gray-900">Penyimpanan Cloud</h2>
        <p class="text-sm text-gray-600">
            Status: {% if online %}<b class="text-emerald-700">Terhubung ke Supabase</b>{% else %}<b class="text-amber-600">Mode lokal</b>{% endif %}
        </p>
        <form action="{{ url_for('muat_ulang_page') }}" method="POST">
            <button class="px-4 py-2 bg-gray-700 text-white rounded-md text-sm">Muat Ulang Data</button>
        </form>
    </div>
    <div class="bg-white p-6 rounded-xl shadow-lg space-y-3">
        <h2 class="text-xl font-bold text-gray-900">Backup Manual</h2>
        <p class="text-sm text-gray-600">{{ data.list_warga | length }} warga, {{ data.list_transaksi | length }} transaksi.</p>
        <a href="{{ url_for('ekspor_backup_page') }}" class="inline-block px-4 py-2 bg-emerald-600 text-white rounded-md text-sm">Ekspor JSON</a>
        <form action="{{ url_for('impor_backup_page') }}" method="POST" enctype="multipart/form-data"
              onsubmit="return confirm('Import data akan menimpa data saat ini. Lanjutkan?')" class="space-y-2">
            <input type="file" name="file" accept="application/json,.json" required class="block text-sm">
            <button class="px-4 py-2 bg-red-600 text-white rounded-md text-sm">Impor JSON</button>
        </form>
    </div>
</div>
"""

HTML_PENGATURAN = """
<div class="grid grid-cols-1 lg:grid-cols-2 gap-6">
    <div class="bg-white p-6 rounded-xl shadow-lg">
        <h2 class="text-xl font-bold text-gray-900 mb-4">Profil Instansi / Kelompok</h2>
        <form action="{{ url_for('pengaturan_page') }}" method="POST" enctype="multipart/form-data" class="space-y-3">
            <input name="nama_instansi" value="{{ data.pengaturan.nama_instansi }}" required placeholder="Contoh: RT 05 / RW 12" class="block w-full px-3 py-2 border border-gray-300 rounded-md text-sm">
            <textarea name="alamat_instansi" rows="3" placeholder="Contoh: Jl. Merdeka No. 123" class="block w-full px-3 py-2 border border-gray-300 rounded-md text-sm">{{ data.pengaturan.alamat_instansi }}</textarea>
            {% if data.pengaturan.logo_instansi %}
            <div class="flex items-center gap-3">
                <img src="{{ data.pengaturan.logo_instansi }}" class="h-14 w-14 rounded-lg object-cover" alt="logo">
                <label class="text-sm"><input type="checkbox" name="hapus_logo" value="1"> Hapus logo</label>
            </div>
            {% endif %}
            <input type="file" name="logo" accept="image/*" class="block text-sm">
            <button class="w-full py-2 rounded-md text-sm font-medium text-white bg-emerald-600 hover:bg-emerald-700">Simpan Perubahan</button>
        </form>
    </div>
    <div class="bg-white p-6 rounded-xl shadow-lg">
        <h2 class="text-xl font-bold text-gray-900 mb-4">Keamanan & Akses</h2>
        <ul class="divide-y divide-gray-100 mb-4">
            {% for p in daftar_pengguna %}
            <li class="py-2 flex justify-between items-center text-sm">
                <span>{{ p.nama }} <span class="text-gray-500">({{ p.user_id }} &middot; {{ p.role }})</span></span>
                {% if p.id != 'bawaan' %}
                <form action="{{ url_for('hapus_pengguna_page', pengguna_id=p.id) }}" method="POST">
                    <button class="text-red-600 hover:underline">Hapus</button>
                </form>
                {% endif %}
            </li>
            {% endfor %}
        </ul>
        <form action="{{ url_for('tambah_pengguna_page') }}" method="POST" class="grid grid-cols-2 gap-2 text-sm">
            <input name="nama" required placeholder="Nama" class="px-3 py-2 border border-gray-300 rounded-md">
            <input name="jabatan" placeholder="Jabatan" class="px-3 py-2 border border-gray-300 rounded-md">
            <input name="user_id" required placeholder="User ID" class="px-3 py-2 border border-gray-300 rounded-md">
            <input name="password" type="password" required placeholder="Kata sandi" class="px-3 py-2 border border-gray-300 rounded-md">
            <select name="role" class="px-3 py-2 border border-gray-300 rounded-md">
                {% for r in daftar_role %}<option value="{{ r }}">{{ r | capitalize }}</option>{% endfor %}
            </select>
            <button class="px-4 py-2 bg-gray-700 text-white rounded-md">Tambah Pengguna</button>
        </form>
    </div>
</div>
"""


# ---------------- RUTE FLASK ----------------

@app.route("/login", methods=["GET", "POST"])
def login_page():
    if session.get('logged_in'):
        return redirect(url_for('index_page'))

    if request.method == "POST":
        user_id = request.form.get("user_id", "").strip()
        password = request.form.get("password", "")
        pengguna = ambil_data().cek_login(user_id, password)
        if pengguna is None:
            flash("User ID atau Password salah. Silakan coba lagi.", "danger")
            return redirect(url_for('login_page'))

        session['logged_in'] = True
        session['user_id'] = pengguna.user_id
        session['username'] = pengguna.nama
        session['role'] = pengguna.role
        flash(f"Login berhasil! Selamat datang, {pengguna.nama}.", "success")
        return redirect(url_for('index_page'))

    return render_halaman(HTML_LOGIN, "Login")


@app.route("/logout")
def logout_page():
    session.clear()
    flash("Anda telah berhasil logout.", "success")
    return redirect(url_for('login_page'))


@app.route("/notifikasi/tutup")
@login_required
def tutup_notifikasi():
    ambil_data().galat_sinkron = None
    return redirect(request.referrer or url_for('index_page'))


@app.route("/")
@login_required
def index_page():
    data = ambil_data()
    sekarang = datetime.now()
    tahun_matriks = request.args.get("tahun", type=int) or sekarang.year

    tunggakan = tunggakan_tahun_berjalan(data.list_warga, data.iuran, data.nominal_wajib, sekarang)
    cek = None
    warga = data.cari_warga(request.args.get("cek", ""))
    if warga is not None:
        cek = rekap_warga(warga, data.iuran, periode_tahun_berjalan(sekarang), data.nominal_wajib, sekarang)

    return render_halaman(
        HTML_DASHBOARD, "Dasbor",
        ringkasan=ringkasan_kas(data.list_transaksi),
        arus=arus_kas_bulan(data.list_transaksi, sekarang.month, sekarang.year),
        tunggakan=tunggakan,
        total_tunggakan=total_tunggakan(tunggakan),
        matriks=matriks_pembayaran(data.list_warga, data.iuran, tahun_matriks),
        tahun_matriks=tahun_matriks,
        tahun_sekarang=sekarang.year,
        warga_urut=urut_warga(data.list_warga),
        cek=cek,
    )


# --- Rute Warga ---
@app.route("/warga", methods=["GET", "POST"])
@login_required
def warga_page():
    data = ambil_data()
    if request.method == "POST":
        warga = data.tambah_warga(
            request.form.get("nama"),
            request.form.get("no_kk"),
            request.form.get("whatsapp"),
            request.form.get("blok"),
        )
        if warga is None:
            flash("Nama dan No KK wajib diisi.", "danger")
        else:
            flash(f"{warga.nama} berhasil didaftarkan.", "success")
        return redirect(url_for('warga_page'))

    return render_halaman(HTML_WARGA, "Input Warga", warga_urut=urut_warga(data.list_warga))


@app.route("/warga/<string:warga_id>/hapus", methods=["POST"])
@login_required
def hapus_warga_page(warga_id):
    if ambil_data().hapus_warga(warga_id):
        flash("Data warga berhasil dihapus.", "success")
    else:
        flash("Warga tidak ditemukan.", "danger")
    if request.form.get("kembali") == "master":
        return redirect(url_for('master_data_page'))
    return redirect(url_for('warga_page'))


@app.route("/warga/<string:warga_id>/ubah", methods=["POST"])
@login_required
def ubah_warga_page(warga_id):
    warga = ambil_data().ubah_warga(
        warga_id,
        nama=request.form.get("nama", ""),
        no_kk=request.form.get("no_kk", ""),
        whatsapp=request.form.get("whatsapp", ""),
        blok=request.form.get("blok", ""),
    )
    if warga is None:
        flash("Data warga gagal diperbarui.", "danger")
    else:
        flash(f"Data {warga.nama} berhasil diperbarui.", "success")
    return redirect(url_for('master_data_page'))


@app.route("/master-data")
@login_required
def master_data_page():
    data = ambil_data()
    cari = request.args.get("cari", "").strip()
    blok = request.args.get("blok", "Semua")

    daftar_blok = ["Semua"] + sorted({w.blok or "Tanpa Blok" for w in data.list_warga})
    daftar_warga = []
    for w in urut_warga(data.list_warga):
        cocok_cari = (
            cari.casefold() in w.nama.casefold() or cari in w.no_kk or cari in w.whatsapp
        )
        cocok_blok = blok == "Semua" or (w.blok or "Tanpa Blok") == blok
        if cocok_cari and cocok_blok:
            daftar_warga.append(w)

    return render_halaman(
        HTML_MASTER_DATA, "Master Data",
        cari=cari, blok=blok, daftar_blok=daftar_blok, daftar_warga=daftar_warga,
        edit=data.cari_warga(request.args.get("edit", "")),
    )


@app.route("/master-data/ekspor")
@login_required
def ekspor_warga_page():
    nama_file = f"master_data_warga_{datetime.now().strftime('%Y-%m-%d')}.csv"
    return Response(
        ekspor_warga_csv(ambil_data().list_warga),
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={nama_file}"},
    )


# --- Rute Iuran ---
@app.route("/iuran", methods=["GET", "POST"])
@login_required
def iuran_page():
    data = ambil_data()
    sekarang = datetime.now()

    if request.method == "POST":
        mode = request.form.get("mode", "hari")
        warga_id = request.form.get("warga_id", "")
        try:
            bulan = int(request.form.get("bulan") or sekarang.month)
            tahun = int(request.form.get("tahun") or sekarang.year)
            jumlah = baca_rupiah(request.form.get("jumlah"))

            if mode == "hari":
                hari = [int(h) for h in request.form.getlist("hari")]
                if jumlah is None:
                    jumlah = len(set(hari)) * data.nominal_wajib
                hasil = data.catat_iuran_hari(warga_id, hari, bulan, tahun, jumlah)
            elif mode == "bulan":
                jumlah_bulan = int(request.form.get("jumlah_bulan") or 1)
                if jumlah is None:
                    jumlah = total_hari_bulan(bulan, tahun, max(jumlah_bulan, 0)) * data.nominal_wajib
                hasil = data.catat_iuran_bulan(
                    warga_id, bulan, tahun, jumlah_bulan, jumlah,
                    mode=request.form.get("mode_paket", MODE_HARIAN),
                )
            else:
                hasil = data.catat_iuran_bebas(warga_id, jumlah or 0, request.form.get("catatan", ""))
        except ValueError:
            flash("Input angka tidak valid.", "danger")
            return redirect(url_for('iuran_page', mode=mode))

        if hasil is None:
            flash("Data setoran belum lengkap: pilih warga, tanggal, dan jumlah lebih dari 0.", "danger")
        else:
            flash(f"Iuran tercatat: {hasil.keterangan} ({format_rupiah(hasil.jumlah)}).", "success")
        return redirect(url_for('iuran_page', mode=mode))

    mode = request.args.get("mode", "hari")
    if mode not in ("hari", "bulan", "bebas"):
        mode = "hari"
    input_bulan = request.args.get("input_bulan", type=int) or sekarang.month
    if not 1 <= input_bulan <= 12:
        input_bulan = sekarang.month
    input_tahun = request.args.get("input_tahun", type=int) or sekarang.year
    warga_terpilih = request.args.get("warga", "")

    rekap = "bulan" if request.args.get("rekap") == "bulan" else "tahun"
    tab = "lunas" if request.args.get("tab") == "lunas" else "tunggakan"
    lihat_bulan = request.args.get("lihat_bulan", type=int) or sekarang.month
    if not 1 <= lihat_bulan <= 12:
        lihat_bulan = sekarang.month
    lihat_tahun = request.args.get("lihat_tahun", type=int) or sekarang.year
    cari = request.args.get("cari", "")

    periode = periode_bulan(lihat_bulan, lihat_tahun) if rekap == "bulan" else periode_tahun_berjalan(sekarang)
    daftar_tunggakan, daftar_lunas = rekap_tunggakan(
        data.list_warga, data.iuran, periode, data.nominal_wajib, sekarang, cari
    )

    return render_halaman(
        HTML_IURAN, "Iuran",
        mode=mode,
        mode_harian=MODE_HARIAN,
        mode_awal_bulan=MODE_AWAL_BULAN,
        input_bulan=input_bulan,
        input_tahun=input_tahun,
        daftar_hari=range(1, jumlah_hari(input_bulan, input_tahun) + 1),
        warga_urut=urut_warga(data.list_warga),
        warga_terpilih=warga_terpilih,
        sisa_terpilih=sisa_tahun_berjalan(data.iuran, warga_terpilih, data.nominal_wajib, sekarang) if warga_terpilih else 0,
        jumlah_awal=request.args.get("jumlah", ""),
        catatan_awal=request.args.get("catatan", ""),
        rekap=rekap,
        tab=tab,
        lihat_bulan=lihat_bulan,
        lihat_tahun=lihat_tahun,
        bulan_sebelum=geser_bulan(lihat_bulan, lihat_tahun, -1),
        bulan_sesudah=geser_bulan(lihat_bulan, lihat_tahun, 1),
        tahun_sekarang=sekarang.year,
        cari=cari,
        daftar_tunggakan=daftar_tunggakan,
        daftar_lunas=daftar_lunas,
    )


@app.route("/iuran/nominal", methods=["POST"])
@login_required
def nominal_wajib_page():
    try:
        nominal = baca_rupiah(request.form.get("nominal_wajib"))
    except ValueError:
        nominal = None
    if nominal is None or ambil_data().ubah_nominal_wajib(nominal) is None:
        flash("Nominal wajib tidak valid.", "danger")
    else:
        flash(f"Nominal wajib diubah menjadi {format_rupiah(nominal)} per hari.", "success")
    return redirect(url_for('iuran_page'))


# --- Rute Pengeluaran ---
@app.route("/pengeluaran", methods=["GET", "POST"])
@login_required
def pengeluaran_page():
    data = ambil_data()
    sekarang = datetime.now()

    if request.method == "POST":
        try:
            tanggal = datetime.strptime(request.form.get("tanggal", ""), "%Y-%m-%d").date()
            jumlah = baca_rupiah(request.form.get("jumlah")) or 0
        except ValueError:
            flash("Tanggal atau jumlah tidak valid.", "danger")
            return redirect(url_for('pengeluaran_page'))

        kategori = kategori_pengeluaran.get(request.form.get("kategori"), "Lain-lain")
        transaksi = data.tambah_transaksi(
            request.form.get("keterangan"), jumlah, KELUAR, sub_keterangan=kategori, tanggal=tanggal
        )
        if transaksi is None:
            flash("Keterangan wajib diisi dan jumlah harus lebih dari 0.", "danger")
        else:
            flash("Pengeluaran berhasil disimpan.", "success")
        return redirect(url_for('pengeluaran_page'))

    filter_bulan = request.args.get("bulan", str(sekarang.month))
    filter_tahun = request.args.get("tahun", str(sekarang.year))
    bulan = int(filter_bulan) if filter_bulan.isdigit() else None
    tahun = int(filter_tahun) if filter_tahun.isdigit() else None
    daftar_pengeluaran = filter_pengeluaran(data.list_transaksi, bulan, tahun)

    return render_halaman(
        HTML_PENGELUARAN, "Belanja",
        kategori_pengeluaran=kategori_pengeluaran,
        today=sekarang.strftime("%Y-%m-%d"),
        filter_bulan=filter_bulan,
        filter_tahun=filter_tahun,
        daftar_tahun=tahun_tersedia(data.list_transaksi, sekarang.year),
        daftar_pengeluaran=daftar_pengeluaran,
        total=sum(t.jumlah for t in daftar_pengeluaran),
    )


# --- Rute Laporan ---
@app.route("/laporan", methods=["GET", "POST"])
@login_required
def laporan_page():
    data = ambil_data()

    if request.method == "POST":
        mulai_str = request.form.get("mulai", "")
        akhir_str = request.form.get("akhir", "")
    else:
        mulai_str = request.args.get("mulai", "")
        akhir_str = request.args.get("akhir", "")
    filter_tanggal = {"mulai": mulai_str, "akhir": akhir_str}

    list_transaksi = data.list_transaksi
    if mulai_str or akhir_str:
        try:
            mulai = datetime.strptime(mulai_str, "%Y-%m-%d").date()
            akhir = datetime.strptime(akhir_str, "%Y-%m-%d").date()
            list_transaksi = filter_periode(data.list_transaksi, mulai, akhir)
        except ValueError:
            flash("Format tanggal tidak valid.", "danger")
            filter_tanggal = {"mulai": "", "akhir": ""}

    return render_halaman(
        HTML_LAPORAN, "Laporan",
        filter_tanggal=filter_tanggal,
        ringkasan=ringkasan_kas(list_transaksi),
        baris=saldo_berjalan(list_transaksi),
        masuk=MASUK,
        keluar=KELUAR,
    )


@app.route("/laporan/transaksi", methods=["POST"])
@login_required
def tambah_transaksi_page():
    try:
        jumlah = baca_rupiah(request.form.get("jumlah")) or 0
    except ValueError:
        flash("Jumlah tidak valid.", "danger")
        return redirect(url_for('laporan_page'))

    transaksi = ambil_data().tambah_transaksi(
        request.form.get("keterangan"),
        jumlah,
        request.form.get("kategori", MASUK),
        sub_keterangan=request.form.get("sub_keterangan", ""),
    )
    if transaksi is None:
        flash("Transaksi gagal disimpan: periksa keterangan dan jumlah.", "danger")
    else:
        flash("Transaksi berhasil disimpan.", "success")
    return redirect(url_for('laporan_page'))


# --- Rute Backup ---
@app.route("/backup")
@login_required
def backup_page():
    data = ambil_data()
    return render_halaman(HTML_BACKUP, "Backup", online=data.penyimpanan.online)


@app.route("/backup/ekspor")
@login_required
def ekspor_backup_page():
    isi = ekspor_cadangan(ambil_data())
    return Response(
        json.dumps(isi, indent=2, ensure_ascii=False),
        mimetype="application/json",
        headers={"Content-Disposition": f"attachment; filename={nama_file_cadangan()}"},
    )


@app.route("/backup/impor", methods=["POST"])
@login_required
def impor_backup_page():
    file = request.files.get("file")
    if file is None or not file.filename:
        flash("Pilih file backup terlebih dahulu.", "danger")
        return redirect(url_for('backup_page'))

    try:
        snapshot = baca_cadangan(file.read().decode("utf-8"))
    except (CadanganTidakValid, UnicodeDecodeError) as e:
        logger.warning("Impor backup ditolak: %s", e)
        flash("File tidak valid!", "danger")
        return redirect(url_for('backup_page'))

    ambil_data().ganti_semua(snapshot)
    flash("Data berhasil diimpor!", "success")
    return redirect(url_for('backup_page'))


@app.route("/backup/muat-ulang", methods=["POST"])
@login_required
def muat_ulang_page():
    galat = ambil_data().muat_ulang()
    if galat:
        flash(galat, "danger")
    else:
        flash("Data berhasil dimuat ulang.", "success")
    return redirect(url_for('backup_page'))


# --- Rute Pengaturan ---
@app.route("/pengaturan", methods=["GET", "POST"])
@login_required
def pengaturan_page():
    data = ambil_data()
    if request.method == "POST":
        logo = None
        file = request.files.get("logo")
        if file is not None and file.filename:
            isi = base64.b64encode(file.read()).decode("ascii")
            logo = f"data:{file.mimetype or 'image/png'};base64,{isi}"
        elif request.form.get("hapus_logo"):
            logo = ""

        if data.ubah_profil(request.form.get("nama_instansi"), request.form.get("alamat_instansi"), logo) is None:
            flash("Nama instansi wajib diisi.", "danger")
        else:
            flash("Pengaturan disimpan.", "success")
        return redirect(url_for('pengaturan_page'))

    return render_halaman(
        HTML_PENGATURAN, "Pengaturan",
        daftar_pengguna=data.semua_pengguna(),
        daftar_role=DAFTAR_ROLE,
    )


@app.route("/pengaturan/pengguna", methods=["POST"])
@login_required
def tambah_pengguna_page():
    pengguna = ambil_data().tambah_pengguna(
        request.form.get("nama"),
        request.form.get("user_id"),
        request.form.get("password"),
        request.form.get("role"),
        request.form.get("jabatan", ""),
    )
    if pengguna is None:
        flash("Pengguna gagal ditambahkan: data kurang lengkap atau User ID sudah dipakai.", "danger")
    else:
        flash(f"Pengguna {pengguna.nama} ditambahkan.", "success")
    return redirect(url_for('pengaturan_page'))


@app.route("/pengaturan/pengguna/<string:pengguna_id>/hapus", methods=["POST"])
@login_required
def hapus_pengguna_page(pengguna_id):
    if ambil_data().hapus_pengguna(pengguna_id):
        flash("Pengguna dihapus.", "success")
    else:
        flash("Pengguna tidak ditemukan.", "danger")
    return redirect(url_for('pengaturan_page'))


# ---------------- Menjalankan Aplikasi (LOKAL) ----------------
if __name__ == "__main__":
    app.run(debug=True, port=int(os.getenv("PORT", 5001)))
