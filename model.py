"""
Skema data aplikasi Jimpitan RT.

Setiap model punya nama field Python (snake_case) dan alias camelCase
yang dipakai di file backup JSON. Konversi ke/dari baris tabel
(Supabase maupun CSV lokal) dilakukan lewat fungsi *_dari_baris dan
*_ke_baris di bawah, satu pasang per entitas.
"""

from datetime import datetime
from typing import Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field

from kalender import format_tanggal

MASUK = "masuk"
KELUAR = "keluar"

ROLE_ADMIN = "admin"
ROLE_BENDAHARA = "bendahara"
ROLE_PENGURUS = "pengurus"
DAFTAR_ROLE = [ROLE_ADMIN, ROLE_BENDAHARA, ROLE_PENGURUS]

# warga_id -> tanggal 'YYYY-MM-DD' -> jumlah
IuranHarian = Dict[str, Dict[str, int]]


class Warga(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="ID unik warga")
    nama: str = Field(..., description="Nama warga")
    no_kk: str = Field("", alias="noKK", description="Nomor Kartu Keluarga")
    whatsapp: str = Field("", description="Nomor WhatsApp")
    blok: str = Field("", description="Blok / nomor rumah")
    terdaftar_at: str = Field("", alias="terdaftarAt", description="Tanggal terdaftar (format tampilan)")


class Transaksi(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="ID unik transaksi")
    tanggal: str = Field(..., description="Tanggal tampilan, contoh '15 Okt 2024'")
    keterangan: str = Field(..., description="Deskripsi transaksi")
    sub_keterangan: str = Field("", alias="subKeterangan", description="Keterangan tambahan / periode")
    kategori: Literal["masuk", "keluar"] = Field(..., description="Jenis transaksi")
    jumlah: int = Field(..., ge=0, description="Jumlah rupiah")
    timestamp: int = Field(0, description="Waktu input (ms sejak epoch), untuk urutan kronologis")


class Pengguna(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    nama: str
    jabatan: str = ""
    user_id: str = Field(..., alias="userId")
    password: str = Field(..., alias="pass")
    role: Literal["admin", "bendahara", "pengurus"] = ROLE_PENGURUS


class Pengaturan(BaseModel):
    nominal_wajib: int = Field(500, ge=0, description="Iuran wajib per hari")
    nama_instansi: str = "Jimpitan RT"
    alamat_instansi: str = ""
    logo_instansi: str = ""


# ---------------- Konversi Baris <-> Model ----------------

def _teks(nilai):
    if nilai is None:
        return ""
    return str(nilai)


def _angka(nilai, bawaan=0):
    try:
        return int(float(nilai))
    except (ValueError, TypeError):
        return bawaan


def _tanggal_terdaftar(nilai):
    # Supabase mengirim timestamptz ISO, CSV lokal sudah berformat tampilan
    teks = _teks(nilai)
    if not teks:
        return ""
    try:
        return format_tanggal(datetime.fromisoformat(teks.replace("Z", "+00:00")))
    except ValueError:
        return teks


def warga_dari_baris(baris):
    return Warga(
        id=_teks(baris["id"]),
        nama=_teks(baris.get("nama")),
        no_kk=_teks(baris.get("no_kk")),
        whatsapp=_teks(baris.get("whatsapp")),
        blok=_teks(baris.get("blok")),
        terdaftar_at=_tanggal_terdaftar(baris.get("terdaftar_at")),
    )


def warga_ke_baris(warga):
    return {
        "id": warga.id,
        "nama": warga.nama,
        "no_kk": warga.no_kk,
        "whatsapp": warga.whatsapp,
        "blok": warga.blok,
        "terdaftar_at": warga.terdaftar_at,
    }


def transaksi_dari_baris(baris):
    return Transaksi(
        id=_teks(baris["id"]),
        tanggal=_teks(baris.get("tanggal_tampilan")),
        keterangan=_teks(baris.get("keterangan")),
        sub_keterangan=_teks(baris.get("sub_keterangan")),
        kategori=baris.get("kategori"),
        jumlah=_angka(baris.get("jumlah")),
        timestamp=_angka(baris.get("timestamp_ms")),
    )


def transaksi_ke_baris(transaksi):
    return {
        "id": transaksi.id,
        "tanggal_tampilan": transaksi.tanggal,
        "keterangan": transaksi.keterangan,
        "sub_keterangan": transaksi.sub_keterangan,
        "kategori": transaksi.kategori,
        "jumlah": transaksi.jumlah,
        "timestamp_ms": transaksi.timestamp,
    }


def iuran_dari_baris(daftar_baris) -> IuranHarian:
    iuran = {}
    for baris in daftar_baris:
        warga_id = _teks(baris.get("warga_id"))
        tanggal = _teks(baris.get("tanggal"))
        if not warga_id or not tanggal:
            continue
        iuran.setdefault(warga_id, {})[tanggal] = _angka(baris.get("jumlah"))
    return iuran


def iuran_ke_baris(iuran: IuranHarian) -> List[dict]:
    return [
        {"warga_id": warga_id, "tanggal": tanggal, "jumlah": jumlah}
        for warga_id, log in iuran.items()
        for tanggal, jumlah in log.items()
    ]


def pengaturan_dari_baris(daftar_baris):
    nilai = {_teks(b.get("kunci")): b.get("nilai") for b in daftar_baris}
    bawaan = Pengaturan()
    return Pengaturan(
        nominal_wajib=max(0, _angka(nilai.get("nominal_wajib"), bawaan.nominal_wajib)),
        nama_instansi=_teks(nilai.get("nama_instansi", bawaan.nama_instansi)),
        alamat_instansi=_teks(nilai.get("alamat_instansi", bawaan.alamat_instansi)),
        logo_instansi=_teks(nilai.get("logo_instansi", bawaan.logo_instansi)),
    )


def pengaturan_ke_baris(pengaturan):
    return [
        {"kunci": "nominal_wajib", "nilai": str(pengaturan.nominal_wajib)},
        {"kunci": "nama_instansi", "nilai": pengaturan.nama_instansi},
        {"kunci": "alamat_instansi", "nilai": pengaturan.alamat_instansi},
        {"kunci": "logo_instansi", "nilai": pengaturan.logo_instansi},
    ]


def pengguna_dari_baris(baris):
    role = _teks(baris.get("role"))
    return Pengguna(
        id=_teks(baris["id"]),
        nama=_teks(baris.get("nama")),
        jabatan=_teks(baris.get("jabatan")),
        user_id=_teks(baris.get("user_id")),
        password=_teks(baris.get("pass")),
        role=role if role in DAFTAR_ROLE else ROLE_PENGURUS,
    )


def pengguna_ke_baris(pengguna):
    return {
        "id": pengguna.id,
        "nama": pengguna.nama,
        "jabatan": pengguna.jabatan,
        "user_id": pengguna.user_id,
        "pass": pengguna.password,
        "role": pengguna.role,
    }
