import math
from calendar import monthrange
from datetime import date, datetime

NAMA_BULAN = [
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember"
]
NAMA_BULAN_PENDEK = [
    "Jan", "Feb", "Mar", "Apr", "Mei", "Jun",
    "Jul", "Agu", "Sep", "Okt", "Nov", "Des"
]

MS_PER_HARI = 1000 * 60 * 60 * 24


def jumlah_hari(bulan, tahun):
    """Jumlah hari dalam bulan (kalender Gregorian, termasuk kabisat)."""
    return monthrange(tahun, bulan)[1]


def kunci_tanggal(tahun, bulan, hari):
    return f"{tahun}-{bulan:02d}-{hari:02d}"


def parse_kunci(kunci):
    """Ubah kunci 'YYYY-MM-DD' jadi date. Kunci rusak menghasilkan None."""
    try:
        return datetime.strptime(str(kunci), "%Y-%m-%d").date()
    except (ValueError, TypeError):
        return None


def format_tanggal(waktu):
    """Format tanggal tampilan, contoh: '15 Okt 2024'."""
    return f"{waktu.day} {NAMA_BULAN_PENDEK[waktu.month - 1]} {waktu.year}"


def parse_tanggal_tampilan(teks):
    """Kebalikan format_tanggal. Mengembalikan None kalau formatnya tidak dikenali."""
    bagian = str(teks or "").split()
    if len(bagian) < 3 or bagian[1] not in NAMA_BULAN_PENDEK:
        return None
    try:
        return date(int(bagian[2]), NAMA_BULAN_PENDEK.index(bagian[1]) + 1, int(bagian[0]))
    except ValueError:
        return None


def geser_bulan(bulan, tahun, n):
    """Maju n bulan dari (bulan, tahun); lewat Desember pindah tahun."""
    indeks = (tahun * 12 + (bulan - 1)) + n
    return indeks % 12 + 1, indeks // 12


def total_hari_bulan(bulan, tahun, banyak_bulan):
    """Total hari dari banyak_bulan bulan berturut-turut mulai (bulan, tahun)."""
    total = 0
    for i in range(banyak_bulan):
        b, t = geser_bulan(bulan, tahun, i)
        total += jumlah_hari(b, t)
    return total


def sebagai_datetime(waktu):
    if isinstance(waktu, datetime):
        return waktu
    return datetime(waktu.year, waktu.month, waktu.day)


def sebagai_date(waktu):
    if isinstance(waktu, datetime):
        return waktu.date()
    return waktu


def hari_berjalan_tahun(sekarang):
    # ceil dari selisih waktu sejak 1 Januari, bukan nomor hari kalender
    sekarang = sebagai_datetime(sekarang)
    awal_tahun = datetime(sekarang.year, 1, 1)
    selisih_ms = abs((sekarang - awal_tahun).total_seconds()) * 1000
    return math.ceil(selisih_ms / MS_PER_HARI)


def timestamp_ms(waktu):
    return int(sebagai_datetime(waktu).timestamp() * 1000)
